import json
import logging
from typing import Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field
from pathlib import Path

import yaml
import lxml.etree as ET

from .models import MathNode, NodeKind, SpaceSize, get_children
from .latex_parser import LaTeXParser, MathSyntaxError, parse_latex


logger = logging.getLogger(__name__)

MATHML_NAMESPACE = 'http://www.w3.org/1998/Math/MathML'


@dataclass
class MathMLElement:
    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    content: Optional[str] = None
    children: List['MathMLElement'] = field(default_factory=list)

    def to_element(self) -> ET.Element:
        """Convert to lxml Element."""
        elem = ET.Element(self.tag, **self.attributes)

        if self.content is not None:
            elem.text = self.content

        for child in self.children:
            elem.append(child.to_element())

        return elem

    def to_xml(self, pretty_print: bool = True) -> str:
        """Convert to XML string."""
        return ET.tostring(
            self.to_element(),
            pretty_print=pretty_print,
            encoding='unicode'
        )


class MathMLSymbolMapping:
    """Unicode glyphs for operators, Greek letters and delimiters."""

    def __init__(self, config_path: Optional[Path] = None):
        self.mappings = {}
        if config_path and Path(config_path).exists():
            self._load_from_file(Path(config_path))
        else:
            self._load_defaults()

    def _load_from_file(self, path: Path):
        """Load mappings from YAML/JSON file."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.suffix in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)

            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")

            self._load_defaults()
            for category, mapping in data.items():
                self.mappings.setdefault(category, {}).update(mapping)
            logger.info(f"Loaded symbol mappings from {path}")

        except Exception as e:
            logger.warning(f"Failed to load symbol mappings from {path}: {e}")
            self._load_defaults()

    def _load_defaults(self):
        """Load default symbol mappings (keys are stored node values)."""
        self.mappings = {
            'operators': {
                '-': '−', '*': '⋅', 'pm': '±', 'mp': '∓',
                'times': '×', 'div': '÷', 'cdot': '⋅', 'circ': '∘',
                'bullet': '•', 'star': '⋆', 'ast': '∗',
                'neq': '≠', 'ne': '≠', 'leq': '≤', 'le': '≤',
                'geq': '≥', 'ge': '≥', 'll': '≪', 'gg': '≫',
                'subset': '⊂', 'supset': '⊃', 'subseteq': '⊆',
                'supseteq': '⊇', 'in': '∈', 'notin': '∉', 'ni': '∋',
                'sim': '∼', 'simeq': '≃', 'approx': '≈', 'cong': '≅',
                'equiv': '≡', 'propto': '∝', 'mid': '∣',
                'oplus': '⊕', 'ominus': '⊖', 'otimes': '⊗', 'oslash': '⊘',
                'odot': '⊙', 'cap': '∩', 'cup': '∪', 'setminus': '∖',
                'emptyset': '∅', 'varnothing': '∅',
                'forall': '∀', 'exists': '∃', 'nexists': '∄', 'neg': '¬',
                'land': '∧', 'lor': '∨', 'implies': '⟹', 'iff': '⟺',
                'to': '→', 'gets': '←', 'leftarrow': '←', 'rightarrow': '→',
                'leftrightarrow': '↔', 'Leftarrow': '⇐', 'Rightarrow': '⇒',
                'Leftrightarrow': '⇔', 'mapsto': '↦', 'longmapsto': '⟼',
                'uparrow': '↑', 'downarrow': '↓', 'updownarrow': '↕',
                'Uparrow': '⇑', 'Downarrow': '⇓', 'Updownarrow': '⇕',
                'nearrow': '↗', 'searrow': '↘', 'swarrow': '↙', 'nwarrow': '↖',
                'infty': '∞', 'partial': '∂', 'nabla': '∇', 'degree': '°',
                'ldots': '…', 'cdots': '⋯', 'vdots': '⋮', 'ddots': '⋱',
                '%': '%',
            },
            'greek_letters': {
                'alpha': 'α', 'beta': 'β', 'gamma': 'γ', 'delta': 'δ',
                'epsilon': 'ϵ', 'varepsilon': 'ε', 'zeta': 'ζ', 'eta': 'η',
                'theta': 'θ', 'vartheta': 'ϑ', 'iota': 'ι', 'kappa': 'κ',
                'lambda': 'λ', 'mu': 'μ', 'nu': 'ν', 'xi': 'ξ', 'omicron': 'ο',
                'pi': 'π', 'varpi': 'ϖ', 'rho': 'ρ', 'varrho': 'ϱ',
                'sigma': 'σ', 'varsigma': 'ς', 'tau': 'τ', 'upsilon': 'υ',
                'phi': 'ϕ', 'varphi': 'φ', 'chi': 'χ', 'psi': 'ψ', 'omega': 'ω',
                'Alpha': 'Α', 'Beta': 'Β', 'Gamma': 'Γ', 'Delta': 'Δ',
                'Epsilon': 'Ε', 'Zeta': 'Ζ', 'Eta': 'Η', 'Theta': 'Θ',
                'Iota': 'Ι', 'Kappa': 'Κ', 'Lambda': 'Λ', 'Mu': 'Μ', 'Nu': 'Ν',
                'Xi': 'Ξ', 'Omicron': 'Ο', 'Pi': 'Π', 'Rho': 'Ρ', 'Sigma': 'Σ',
                'Tau': 'Τ', 'Upsilon': 'Υ', 'Phi': 'Φ', 'Chi': 'Χ', 'Psi': 'Ψ',
                'Omega': 'Ω',
            },
            'large_operators': {
                'sum': '∑', 'prod': '∏', 'coprod': '∐', 'int': '∫',
                'oint': '∮', 'iint': '∬', 'iiint': '∭',
                'bigcup': '⋃', 'bigcap': '⋂', 'bigoplus': '⨁',
                'bigotimes': '⨂', 'bigvee': '⋁', 'bigwedge': '⋀',
            },
            'delimiters': {
                '(': '(', ')': ')', '[': '[', ']': ']', '{': '{', '}': '}',
                '|': '|', '\\|': '‖', '.': '',
                '\\langle': '⟨', '\\rangle': '⟩',
                '\\lvert': '|', '\\rvert': '|', '\\lVert': '‖', '\\rVert': '‖',
                '\\lfloor': '⌊', '\\rfloor': '⌋', '\\lceil': '⌈', '\\rceil': '⌉',
            },
        }

    def get_symbol(self, name: str, category: Optional[str] = None) -> Optional[str]:
        """Get Unicode symbol for a stored node value."""
        if category and category in self.mappings:
            return self.mappings[category].get(name)

        for mapping in self.mappings.values():
            if isinstance(mapping, dict) and name in mapping:
                return mapping[name]

        return None


class MathMLConverter:
    """Convert expression trees (or LaTeX) to presentation MathML."""

    MATRIX_DELIMITERS = {
        'pmatrix': ('(', ')'),
        'bmatrix': ('[', ']'),
        'Bmatrix': ('{', '}'),
        'vmatrix': ('|', '|'),
        'Vmatrix': ('‖', '‖'),
    }

    SPACE_WIDTHS = {
        SpaceSize.THIN: '0.1667em',
        SpaceSize.MEDIUM: '0.2222em',
        SpaceSize.THICK: '0.2778em',
        SpaceSize.QUAD: '1em',
        SpaceSize.QQUAD: '2em',
    }

    def __init__(self, symbol_config_path: Optional[Path] = None):
        self.symbols = MathMLSymbolMapping(symbol_config_path)

    def convert(self, source: Union[str, MathNode], display_mode: bool = False,
                pretty_print: bool = True) -> str:
        """
        Convert a tree or a LaTeX string to a ``<math>`` document.

        Malformed LaTeX produces an ``<merror>`` document rather than raising.
        """
        if isinstance(source, str):
            try:
                tree = parse_latex(source)
            except MathSyntaxError as e:
                logger.warning(f"Failed to convert LaTeX to MathML: {e}")
                return self._fallback_mathml(source, display_mode, pretty_print)
        else:
            tree = source

        math_element = self.convert_tree(tree, display_mode)
        return math_element.to_xml(pretty_print)

    def convert_tree(self, tree: MathNode, display_mode: bool = False) -> MathMLElement:
        math_element = MathMLElement(
            tag='math',
            attributes={
                'xmlns': MATHML_NAMESPACE,
                'display': 'block' if display_mode else 'inline'
            }
        )

        content = self._convert_node(tree)
        if content.tag == 'mrow':
            math_element.children = content.children
        else:
            math_element.children = [content]

        return math_element

    def _convert_node(self, node: MathNode) -> MathMLElement:
        kind = node.kind

        if kind is NodeKind.NUMBER:
            return MathMLElement(tag='mn', content=node.value)
        if kind is NodeKind.SYMBOL:
            glyph = self.symbols.get_symbol(node.value, 'greek_letters')
            return MathMLElement(tag='mi', content=glyph or node.value)
        if kind is NodeKind.OPERATOR:
            glyph = self.symbols.get_symbol(node.value, 'operators')
            return MathMLElement(tag='mo', content=glyph or node.value)
        if kind is NodeKind.TEXT:
            return MathMLElement(tag='mtext', content=node.value)
        if kind is NodeKind.SPACE:
            return MathMLElement(tag='mspace', attributes={'width': self.SPACE_WIDTHS[node.size]})
        if kind is NodeKind.PLACEHOLDER:
            return MathMLElement(tag='mi')
        if kind is NodeKind.ROW:
            return MathMLElement(tag='mrow', children=[self._convert_node(c) for c in node.children])
        if kind is NodeKind.FRACTION:
            return MathMLElement(tag='mfrac', children=[
                self._convert_slot(node.numerator), self._convert_slot(node.denominator),
            ])
        if kind is NodeKind.POWER:
            return MathMLElement(tag='msup', children=[
                self._convert_slot(node.base), self._convert_slot(node.exponent),
            ])
        if kind is NodeKind.SUBSCRIPT:
            return MathMLElement(tag='msub', children=[
                self._convert_slot(node.base), self._convert_slot(node.subscript),
            ])
        if kind is NodeKind.SUBSUP:
            return MathMLElement(tag='msubsup', children=[
                self._convert_slot(node.base),
                self._convert_slot(node.subscript),
                self._convert_slot(node.superscript),
            ])
        if kind is NodeKind.SQRT:
            if node.index is None:
                return MathMLElement(tag='msqrt', children=[self._convert_slot(node.radicand)])
            return MathMLElement(tag='mroot', children=[
                self._convert_slot(node.radicand), self._convert_slot(node.index),
            ])
        if kind is NodeKind.PARENS:
            return self._convert_parens(node)
        if kind is NodeKind.FUNCTION:
            return self._convert_function(node)
        if kind is NodeKind.MATRIX:
            return self._convert_matrix(node)

        logger.debug(f"No MathML conversion for node kind {kind}")
        return MathMLElement(tag='mrow')

    def _convert_slot(self, node: MathNode) -> MathMLElement:
        """Convert a slot, unwrapping single-child rows so scripts stay compact."""
        if node.kind is NodeKind.ROW and len(node.children) == 1:
            return self._convert_node(node.children[0])
        return self._convert_node(node)

    def _fence(self, delimiter: str) -> MathMLElement:
        glyph = self.symbols.get_symbol(delimiter, 'delimiters')
        return MathMLElement(
            tag='mo',
            content=delimiter if glyph is None else glyph,
            attributes={'fence': 'true', 'stretchy': 'true'}
        )

    def _convert_parens(self, node: MathNode) -> MathMLElement:
        mrow = MathMLElement(tag='mrow')
        if node.open != '.':
            mrow.children.append(self._fence(node.open))
        mrow.children.append(self._convert_slot(node.content))
        if node.close != '.':
            mrow.children.append(self._fence(node.close))
        return mrow

    def _convert_function(self, node: MathNode) -> MathMLElement:
        large = self.symbols.get_symbol(node.name, 'large_operators')
        if large is not None:
            head = MathMLElement(tag='mo', content=large, attributes={'largeop': 'true'})
        else:
            head = MathMLElement(tag='mi', content=node.name, attributes={'mathvariant': 'normal'})

        limits = node.limits
        if limits is not None:
            lower = self._convert_slot(limits.lower) if limits.lower is not None else None
            upper = self._convert_slot(limits.upper) if limits.upper is not None else None
            if lower is not None and upper is not None:
                head = MathMLElement(tag='munderover', children=[head, lower, upper])
            elif lower is not None:
                head = MathMLElement(tag='munder', children=[head, lower])
            elif upper is not None:
                head = MathMLElement(tag='mover', children=[head, upper])

        if node.argument is None:
            return head

        return MathMLElement(tag='mrow', children=[
            head,
            MathMLElement(tag='mo', content='⁡'),
            self._convert_slot(node.argument),
        ])

    def _convert_matrix(self, node: MathNode) -> MathMLElement:
        mtable = MathMLElement(tag='mtable')

        for cells in node.rows:
            mtr = MathMLElement(tag='mtr')
            for cell in cells:
                mtr.children.append(MathMLElement(tag='mtd', children=[self._convert_slot(cell)]))
            mtable.children.append(mtr)

        delimiters = self.MATRIX_DELIMITERS.get(node.style)
        if not delimiters:
            return mtable

        mrow = MathMLElement(tag='mrow')
        for glyph, position in ((delimiters[0], 'open'), (None, None), (delimiters[1], 'close')):
            if glyph is None:
                mrow.children.append(mtable)
            else:
                mrow.children.append(MathMLElement(
                    tag='mo',
                    content=glyph,
                    attributes={'fence': 'true', 'stretchy': 'true'}
                ))
        return mrow

    def _fallback_mathml(self, latex: str, display_mode: bool, pretty_print: bool) -> str:
        """Generate fallback MathML for failed conversions."""
        math_element = MathMLElement(
            tag='math',
            attributes={
                'xmlns': MATHML_NAMESPACE,
                'display': 'block' if display_mode else 'inline'
            }
        )

        merror = MathMLElement(tag='merror')
        merror.children.append(MathMLElement(tag='mtext', content=f"Failed to convert: {latex[:100]}"))
        math_element.children.append(merror)

        return math_element.to_xml(pretty_print)

    def validate_mathml(self, mathml: str) -> Tuple[bool, List[str]]:
        """Validate a MathML string using lxml."""
        errors = []

        try:
            parser = ET.XMLParser(recover=False)
            root = ET.fromstring(mathml.encode('utf-8'), parser)

            if ET.QName(root).localname != 'math':
                errors.append("Root element must be <math>")
            if ET.QName(root).namespace != MATHML_NAMESPACE:
                errors.append("Missing or incorrect MathML namespace")

            self._validate_element(root, errors)

        except ET.XMLSyntaxError as e:
            errors.append(f"XML syntax error: {e}")

        return len(errors) == 0, errors

    def _validate_element(self, element: ET.Element, errors: List[str]):
        tag = ET.QName(element).localname

        content_elements = {'mi', 'mn', 'mo', 'mtext'}
        if tag in content_elements and len(element) > 0:
            errors.append(f"Element <{tag}> should not have child elements")

        required_children = {
            'mfrac': 2, 'msub': 2, 'msup': 2, 'msubsup': 3,
            'munder': 2, 'mover': 2, 'munderover': 3, 'mroot': 2
        }
        if tag in required_children and len(element) != required_children[tag]:
            errors.append(
                f"Element <{tag}> requires {required_children[tag]} children, found {len(element)}"
            )

        for child in element:
            self._validate_element(child, errors)


def tree_to_mathml(source: Union[str, MathNode], display: bool = False,
                   config_path: Optional[Path] = None) -> str:
    """Convenience function to convert a tree or LaTeX to MathML."""
    return MathMLConverter(config_path).convert(source, display)


__all__ = ['MATHML_NAMESPACE', 'MathMLConverter', 'MathMLElement', 'MathMLSymbolMapping', 'tree_to_mathml']
