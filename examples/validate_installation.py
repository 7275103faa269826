#!/usr/bin/env python3
"""
Validate Math Editor installation
"""

import sys
import time

print("🔍 Validating Math Editor Installation...")
print("=" * 60)

# 1. Check imports
print("\n1. Checking imports...")
try:
    from math_editor import (
        MathEditorSession,
        MathMLConverter,
        MathRenderer,
        parse_latex,
        serialize_to_latex,
    )
    print("   ✅ All imports successful")
except ImportError as e:
    print(f"   ❌ Import error: {e}")
    sys.exit(1)

# 2. Round trip
print("\n2. Testing LaTeX round trip...")
latex = r"\frac{-b\pm \sqrt{b^2-4ac}}{2a}"
if serialize_to_latex(parse_latex(latex)) == latex:
    print("   ✅ Parse and serialize working")
else:
    print("   ❌ Round trip changed the formula")

# 3. Editing
print("\n3. Testing editing commands...")
session = MathEditorSession()
session.insert('x^2')
session.insert_command('matrix:2x2:bmatrix')
if session.can_undo and session.undo() and session.latex == 'x^2':
    print("   ✅ Editing and undo working")
else:
    print(f"   ❌ Unexpected content: {session.latex}")

# 4. MathML
print("\n4. Testing MathML export...")
converter = MathMLConverter()
is_valid, errors = converter.validate_mathml(converter.convert(latex))
print("   ✅ Valid MathML" if is_valid else f"   ❌ MathML errors: {errors}")

# 5. Rendering
print("\n5. Checking renderer...")
renderer = MathRenderer()
if renderer.renderer.is_available():
    result = renderer.render_latex(latex)
    print(f"   ✅ Rendered image of size {result.size}" if result.is_valid else f"   ❌ {result.error}")
else:
    print("   ⚠️  Matplotlib not installed (pip install math-editor[rendering])")

# 6. Performance test
print("\n6. Running performance test...")
start = time.time()
for _ in range(100):
    session = MathEditorSession()
    session.insert('a+b')
    session.insert_command('fraction')
    session.insert('c')
elapsed = time.time() - start
print(f"   ✅ 100 sessions edited in {elapsed:.3f}s")

print("\n" + "=" * 60)
print("Validation complete")
