"""
Editor session: the single owner of an editor's undo history.

All reads and writes of the history go through one lock, so a session may be
driven from several threads (a UI thread and a paste handler, say) without
losing edits.
"""

import logging
import threading
from typing import Optional

import regex

from .config import EditorConfig
from .latex_parser import LaTeXParser, MathSyntaxError, parse_latex
from .serializer import SerializeOptions, serialize_to_latex
from .selection import extract_selected_nodes, is_collapsed
from .editor_state import (
    EditorState, History, can_redo, can_undo, create_empty_state, create_history,
    create_state_from_ast, has_selection, is_empty, push_history, redo, undo,
)
from .commands import (
    Command, insert_character, insert_fraction, insert_function, insert_greek,
    insert_matrix, insert_operator, insert_parens, insert_sqrt, insert_subscript,
    insert_superscript,
)


logger = logging.getLogger(__name__)

# "e^2", "10^{-3}": a base followed by a single exponent
SUPERSCRIPT_PATTERN = regex.compile(r'^(?P<base>[^\^\\]*)\^\{?(?P<exponent>[^{}\^]*)\}?$')
MATRIX_COMMAND = regex.compile(r'^matrix(?::(?P<rows>\d*)x(?P<cols>\d*))?(?::(?P<style>\w+))?$')

TYPED_OPERATORS = '+-=<>'
OPENING_DELIMITERS = '([{'


class MathEditorSession:
    """
    Owns the history of one editor and applies commands to it.

    Character and operator typing is merged into one undo step per run when
    ``config.merge_typing`` is set; structural edits always start a new step.
    """

    def __init__(self, latex: Optional[str] = None, config: Optional[EditorConfig] = None):
        self.config = config or EditorConfig()
        self._lock = threading.RLock()
        self._history = create_history(self._initial_state(latex))
        self._merging = False

    def _initial_state(self, latex: Optional[str]) -> EditorState:
        if not latex:
            return create_empty_state()
        try:
            return create_state_from_ast(parse_latex(latex))
        except MathSyntaxError as e:
            logger.warning(f"Starting empty, could not parse initial LaTeX: {e}")
            return create_empty_state()

    # State access

    @property
    def history(self) -> History:
        with self._lock:
            return self._history

    @property
    def state(self) -> EditorState:
        with self._lock:
            return self._history.present

    @property
    def can_undo(self) -> bool:
        return can_undo(self.history)

    @property
    def can_redo(self) -> bool:
        return can_redo(self.history)

    @property
    def is_empty(self) -> bool:
        return is_empty(self.state)

    @property
    def has_selection(self) -> bool:
        return has_selection(self.state)

    @property
    def latex(self) -> str:
        """External LaTeX, with placeholders left out."""
        return serialize_to_latex(
            self.state.root,
            SerializeOptions(pretty_print=self.config.pretty_print, include_placeholders=False)
        )

    @property
    def internal_latex(self) -> str:
        """LaTeX with placeholders kept as ``{}``."""
        return serialize_to_latex(self.state.root, pretty_print=self.config.pretty_print)

    # Commands

    def execute(self, command: Command, merge: bool = False) -> bool:
        """
        Apply a command to the present state.

        Returns False (leaving history untouched) when the command does not
        apply. ``merge`` only coalesces with the previous step if that step
        was a merging one too.
        """
        with self._lock:
            new_state = command(self._history.present)
            if new_state is None:
                logger.debug(f"Command {getattr(command, '__qualname__', command)} did not apply")
                return False

            merge = merge and self.config.merge_typing
            self._history = push_history(
                self._history,
                new_state,
                merge=merge and self._merging,
                max_history=self.config.max_history,
            )
            self._merging = merge
            return True

    def undo(self) -> bool:
        with self._lock:
            if not can_undo(self._history):
                return False
            self._history = undo(self._history)
            self._merging = False
            return True

    def redo(self) -> bool:
        with self._lock:
            if not can_redo(self._history):
                return False
            self._history = redo(self._history)
            self._merging = False
            return True

    def set_latex(self, text: str) -> bool:
        """
        Replace the content from outside, resetting history.

        Malformed LaTeX is logged and ignored; the current content stays.
        """
        try:
            tree = parse_latex(text)
        except MathSyntaxError as e:
            logger.warning(f"Ignoring invalid LaTeX {text!r}: {e}")
            return False

        with self._lock:
            self._history = create_history(create_state_from_ast(tree))
            self._merging = False
        logger.debug("History reset by external value")
        return True

    def copy_latex(self) -> str:
        """The selection as external LaTeX, or the whole expression when collapsed."""
        state = self.state
        if is_collapsed(state.selection):
            return self.latex

        selected = extract_selected_nodes(state.root, state.selection)
        if selected is None:
            return ''
        return serialize_to_latex(selected, include_placeholders=False)

    # Typed input

    def insert(self, text: str) -> bool:
        """
        Insert typed or pasted text at the cursor.

        A backslash command is looked up in the operator, Greek and function
        vocabularies. ``base^exponent`` text is typed into a new superscript.
        Anything else is typed one character at a time.
        """
        if not text:
            return False

        with self._lock:
            if text.startswith('\\'):
                return self._insert_command_word(text[1:])

            match = SUPERSCRIPT_PATTERN.match(text)
            if match and text.count('^') == 1:
                applied = self._type_chars(match.group('base'))
                applied = self.execute(insert_superscript()) or applied
                return self._type_chars(match.group('exponent')) or applied

            return self._type_chars(text)

    def _insert_command_word(self, name: str) -> bool:
        if not name:
            logger.debug("Ignoring a lone backslash")
            return False
        if name in LaTeXParser.OPERATORS or name in LaTeXParser.DELIMITER_COMMANDS:
            return self.execute(insert_operator(name), merge=True)
        if name in LaTeXParser.FUNCTIONS or name in LaTeXParser.LARGE_OPERATORS:
            return self.execute(insert_function(name))
        if name == 'frac':
            return self.execute(insert_fraction())
        if name == 'sqrt':
            return self.execute(insert_sqrt())

        # Greek letters, and unknown commands, become symbols
        return self.execute(insert_greek(name), merge=True)

    def _type_chars(self, text: str) -> bool:
        applied = False
        for char in text:
            applied = self._type_char(char) or applied
        return applied

    def _type_char(self, char: str) -> bool:
        if char in TYPED_OPERATORS:
            return self.execute(insert_operator(char), merge=True)
        if char == '*':
            return self.execute(insert_operator('times'), merge=True)
        if char == '/':
            return self.execute(insert_fraction())
        if char == '^':
            return self.execute(insert_superscript())
        if char == '_':
            return self.execute(insert_subscript())
        if char in OPENING_DELIMITERS:
            return self.execute(insert_parens(char))
        if char.isspace():
            return False
        return self.execute(insert_character(char), merge=True)

    def insert_command(self, name: str) -> bool:
        """
        Run a named structural insert.

        Names: fraction, sqrt, parens, brackets, braces, superscript,
        subscript, and ``matrix[:RxC[:style]]``.
        """
        match = MATRIX_COMMAND.match(name)
        if match:
            rows = int(match.group('rows') or self.config.default_matrix_rows)
            cols = int(match.group('cols') or self.config.default_matrix_cols)
            style = match.group('style') or self.config.default_matrix_style
            return self.execute(insert_matrix(rows, cols, style))

        commands = {
            'fraction': insert_fraction,
            'sqrt': insert_sqrt,
            'parens': lambda: insert_parens('('),
            'brackets': lambda: insert_parens('['),
            'braces': lambda: insert_parens('{'),
            'superscript': insert_superscript,
            'subscript': insert_subscript,
        }
        factory = commands.get(name)
        if factory is None:
            logger.debug(f"Unknown insert command: {name}")
            return False
        return self.execute(factory())


__all__ = ['MathEditorSession']
