#!/usr/bin/env python3
"""Simple example of using the Math Editor core"""

from math_editor import MathEditorSession, tree_to_mathml
from math_editor.commands import move_down, move_right

# Create a session
session = MathEditorSession()

# Type a quadratic, one keystroke group at a time
session.insert('x')
session.insert('=')
session.insert_command('fraction')
session.insert('-b')
session.insert(r'\pm')
session.insert_command('sqrt')
session.insert('b^2')
session.execute(move_right())
session.insert('-4ac')
session.execute(move_right())
session.execute(move_down())
session.insert('2a')

print(f"LaTeX: {session.latex}")

# Undo the denominator, then redo it
session.undo()
print(f"After undo: {session.latex}")
session.redo()

# Export as MathML
print("\nMathML:")
print(tree_to_mathml(session.state.root, display=True))
