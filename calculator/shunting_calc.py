# Shunting-yard calculator: tokenizer, infix-to-postfix converter, postfix evaluator and REPL.
#
# Pipeline for one input line:
#   text -> tokenize() -> TokenSequence (infix) -> to_postfix() -> TokenSequence (postfix)
#        -> evaluate() -> float
#
# Every stage raises a MathError subclass on malformed input; the REPL prints the error and
# keeps going. Only binary + - * / with parentheses and non-negative float literals are
# supported. Division by zero yields IEEE inf/nan instead of an error.

from __future__ import annotations

import argparse
import logging
import math
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from dotenv import find_dotenv, load_dotenv
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# --------------------------
# Exceptions
# --------------------------

class MathError(Exception):
    """Base class for every user-facing evaluation failure."""
    pass

class InvalidNumber(MathError):
    """A run of digits and dots that is not a valid float literal."""

    def __init__(self, literal: str):
        self.literal = literal
        super().__init__(f"Cannot parse literal: `{literal}`")

class UnsupportedCharacter(MathError):
    """A character outside the accepted input alphabet."""

    def __init__(self, char: str):
        self.char = char
        super().__init__(f"Character not supported: `{char}`")

class UnclosedOpenParen(MathError):
    """An opening parenthesis that is never closed."""

    def __init__(self, tokens: TokenSequence):
        self.tokens = tokens
        super().__init__(f"Opened parentheses were not closed: {tokens}")

class UnmatchedCloseParen(MathError):
    """A closing parenthesis without a preceding unmatched opening one."""

    def __init__(self, tokens: TokenSequence):
        self.tokens = tokens
        super().__init__(f"Unmatched closed parentheses: {tokens}")

class ImbalancedExpression(MathError):
    """Operators and operands do not pair up in the postfix sequence."""

    def __init__(self, tokens: TokenSequence):
        self.tokens = tokens
        super().__init__(f"Unmatched numbers and operators: {tokens}")

# --------------------------
# Tokens
# --------------------------

def _divide(x: float, y: float) -> float:
    try:
        return x / y
    except ZeroDivisionError:
        # Python refuses float division by zero; produce the IEEE-754 result instead.
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)

class OperatorKind(Enum):
    """The four binary operators, keyed by their symbol."""
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'

    @property
    def symbol(self) -> str:
        return self.value

    @property
    def precedence(self) -> int:
        return 2 if self in (OperatorKind.MUL, OperatorKind.DIV) else 1

    def apply(self, x: float, y: float) -> float:
        """Return ``x <op> y`` using IEEE double arithmetic."""
        if self is OperatorKind.ADD:
            return x + y
        if self is OperatorKind.SUB:
            return x - y
        if self is OperatorKind.MUL:
            return x * y
        return _divide(x, y)

    def __str__(self) -> str:
        return self.symbol

_PAREN_CHARS = '()'
OPERATOR_CHARS = '+-*/' + _PAREN_CHARS
NUMBER_CHARS = '0123456789.'

@dataclass(frozen=True)
class Token:
    """Base of the four token variants."""

    @staticmethod
    def from_character(char: str) -> Token:
        """Map one of ``+ - * / ( )`` to its token.

        Any other character is a caller bug and raises ValueError; the tokenizer checks the
        character before calling this.
        """
        if char == '(':
            return ParenOpen()
        if char == ')':
            return ParenClose()
        if char in OPERATOR_CHARS:
            return BinaryOperator(OperatorKind(char))
        raise ValueError(f"Not an operator or parenthesis: {char!r}")

    @property
    def is_number(self) -> bool:
        return isinstance(self, Number)

    @property
    def is_operator(self) -> bool:
        return isinstance(self, BinaryOperator)

    @property
    def is_paren(self) -> bool:
        return isinstance(self, (ParenOpen, ParenClose))

@dataclass(frozen=True)
class Number(Token):
    value: float

    def __str__(self) -> str:
        return f"Num({self.value:.3f})"

@dataclass(frozen=True)
class BinaryOperator(Token):
    kind: OperatorKind

    @property
    def precedence(self) -> int:
        return self.kind.precedence

    def apply(self, x: float, y: float) -> float:
        return self.kind.apply(x, y)

    def __str__(self) -> str:
        return f"Oper({self.kind})"

@dataclass(frozen=True)
class ParenOpen(Token):
    def __str__(self) -> str:
        return "ParenOpen"

@dataclass(frozen=True)
class ParenClose(Token):
    def __str__(self) -> str:
        return "ParenClose"

class TokenSequence(list):
    """Ordered tokens passed between stages; renders as ``{Num(1.000), Oper(+)}``."""

    def __str__(self) -> str:
        return "{" + ", ".join(str(token) for token in self) + "}"

# --------------------------
# Tokenizer
# --------------------------

class Tokenizer:
    """Single-pass scanner over one input line with one character of lookahead."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.len = len(text)

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < self.len else ''

    def _advance(self) -> str:
        ch = self.text[self.pos]
        self.pos += 1
        return ch

    def _read_number(self) -> Number:
        start = self.pos
        while self._peek() and self._peek() in NUMBER_CHARS:
            self._advance()
        raw = self.text[start:self.pos]
        try:
            return Number(float(raw))
        except ValueError:
            raise InvalidNumber(raw) from None

    def tokenize(self) -> TokenSequence:
        tokens = TokenSequence()
        while True:
            ch = self._peek()
            if ch == '':
                return tokens
            if ch in NUMBER_CHARS:
                tokens.append(self._read_number())
            elif ch in OPERATOR_CHARS:
                tokens.append(Token.from_character(self._advance()))
            elif ch == '=' or ch.isspace():
                # '=' is only a separator, so "1 + 2 =" reads like "1 + 2".
                self._advance()
            else:
                raise UnsupportedCharacter(ch)

def tokenize(text: str) -> TokenSequence:
    """Split ``text`` into number, operator and parenthesis tokens."""
    tokens = Tokenizer(text).tokenize()
    logger.debug("Tokenized %r into %s", text, tokens)
    return tokens

# --------------------------
# Shunting-yard converter
# --------------------------

def to_postfix(tokens: Iterable[Token]) -> TokenSequence:
    """Reorder infix ``tokens`` into postfix (RPN) order.

    Operators of equal precedence are popped before the incoming one is pushed, which makes
    every operator left-associative: ``8-3-2`` becomes ``8 3 - 2 -``.

    Raises UnmatchedCloseParen or UnclosedOpenParen carrying the original sequence.
    """
    tokens = TokenSequence(tokens)
    op_stack: List[Token] = []
    queue = TokenSequence()

    for token in tokens:
        if isinstance(token, Number):
            queue.append(token)
        elif isinstance(token, ParenOpen):
            op_stack.append(token)
        elif isinstance(token, ParenClose):
            while op_stack and not isinstance(op_stack[-1], ParenOpen):
                queue.append(op_stack.pop())
            if not op_stack:
                raise UnmatchedCloseParen(tokens)
            op_stack.pop()
        elif isinstance(token, BinaryOperator):
            while (op_stack and isinstance(op_stack[-1], BinaryOperator)
                   and op_stack[-1].precedence >= token.precedence):
                queue.append(op_stack.pop())
            op_stack.append(token)
        else:
            raise AssertionError(f"Unknown token type: {token!r}")

    while op_stack:
        top = op_stack.pop()
        if isinstance(top, ParenOpen):
            raise UnclosedOpenParen(tokens)
        queue.append(top)

    logger.debug("Postfix order: %s", queue)
    return queue

# --------------------------
# Postfix evaluator
# --------------------------

def evaluate(tokens: Iterable[Token]) -> float:
    """Evaluate a postfix token sequence with a value stack.

    The right operand is the top of the stack and the left operand sits beneath it.
    Raises ImbalancedExpression when an operator lacks two operands or the stack does not
    end with exactly one value.
    """
    tokens = TokenSequence(tokens)
    stack: List[float] = []
    for token in tokens:
        if isinstance(token, Number):
            stack.append(token.value)
        elif isinstance(token, BinaryOperator):
            if len(stack) < 2:
                raise ImbalancedExpression(tokens)
            rhs, lhs = stack.pop(), stack.pop()
            stack.append(token.apply(lhs, rhs))
        else:
            raise AssertionError(f"{token} reached the postfix evaluator")
    if len(stack) != 1:
        raise ImbalancedExpression(tokens)
    return stack[0]

def eval_expression(text: str) -> float:
    """Trim ``text``, then tokenize, convert and evaluate it.

    The first failing stage's MathError propagates unchanged.
    """
    try:
        result = evaluate(to_postfix(tokenize(text.strip())))
    except MathError as e:
        logger.info("Rejected %r: %s", text, e)
        raise
    logger.debug("Evaluated %r to %r", text, result)
    return result

def format_result(value: float, precision: int = 3) -> str:
    return f"{value:.{precision}f}"

# --------------------------
# Settings
# --------------------------

DEFAULT_HISTORY_FILE = os.path.expanduser("~/.shunting_calc_history")

_ENV_KEYS = {
    'history_file': 'SHUNTING_CALC_HISTORY',
    'precision': 'SHUNTING_CALC_PRECISION',
    'log_level': 'SHUNTING_CALC_LOG_LEVEL',
}

class Settings(BaseModel):
    """Runtime options, read from the environment (and .env) and overridable by flags."""
    history_file: str = DEFAULT_HISTORY_FILE
    precision: int = Field(3, ge=0, le=17, description="Digits printed after the decimal point")
    log_level: str = "WARNING"

    @field_validator('history_file')
    @classmethod
    def history_file_must_not_be_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('History file path cannot be empty')
        return os.path.expanduser(v.strip())

    @field_validator('log_level')
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f'Unknown log level: {v}')
        return level

    @classmethod
    def from_env(cls, **overrides) -> Settings:
        """Build settings from SHUNTING_CALC_* variables; non-None ``overrides`` win."""
        load_dotenv(find_dotenv(usecwd=True))
        values = {}
        for field, env_key in _ENV_KEYS.items():
            env_value = os.getenv(env_key)
            if env_value is not None:
                values[field] = env_value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

# --------------------------
# REPL
# --------------------------

BANNER = (
    "Shunting Yard algorithm calculator, enter an expression to be evaluated.\n"
    "Type `exit` to exit"
)
PROMPT = '>>> '

class REPL:
    """Read-Eval-Print Loop around eval_expression."""

    def __init__(self, settings: Optional[Settings] = None, session=None):
        self.settings = settings or Settings()
        self._session = session

    @property
    def session(self):
        # Created on first use so evaluate_line works without a terminal.
        if self._session is None:
            self._session = PromptSession(history=FileHistory(self.settings.history_file))
        return self._session

    def evaluate_line(self, line: str) -> Tuple[bool, str]:
        """Evaluate a single line. Returns (ok, output)."""
        try:
            result = eval_expression(line)
        except MathError as e:
            return False, str(e)
        return True, format_result(result, self.settings.precision)

    def repl_loop(self) -> None:
        print(BANNER)
        while True:
            try:
                line = self.session.prompt(PROMPT)
            except KeyboardInterrupt:
                print("^C")
                continue
            except EOFError:
                print("Goodbye.")
                break
            if line.strip() == 'exit':
                print("Goodbye.")
                break
            if not line.strip():
                continue
            _, out = self.evaluate_line(line)
            print(out)

# --------------------------
# Entry point
# --------------------------

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shunting-calc",
        description="Evaluate arithmetic expressions with the shunting-yard algorithm.",
    )
    parser.add_argument(
        "expression",
        nargs="?",
        help="Expression to evaluate once; starts the interactive REPL when omitted.",
    )
    parser.add_argument(
        "--precision",
        type=int,
        help="Digits after the decimal point (default: 3, or SHUNTING_CALC_PRECISION).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level (default: WARNING, or SHUNTING_CALC_LOG_LEVEL).",
    )
    parser.add_argument(
        "--history-file",
        type=str,
        help="REPL history file (default: ~/.shunting_calc_history, or SHUNTING_CALC_HISTORY).",
    )
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    settings = Settings.from_env(
        precision=args.precision,
        log_level=args.log_level,
        history_file=args.history_file,
    )
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    if args.expression is not None:
        ok, out = REPL(settings).evaluate_line(args.expression)
        print(out, file=sys.stdout if ok else sys.stderr)
        return 0 if ok else 1

    REPL(settings).repl_loop()
    return 0

if __name__ == '__main__':
    raise SystemExit(main())
