# ============================================================================
# FORMULA INTERPRETER
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Budget formula evaluation
# PURPOSE: Tokenize, parse and evaluate constrained arithmetic formulas
# CREATED: 19 OCT 2026
# ============================================================================
"""
Formula Interpreter

Budget formulas are plain arithmetic over answer placeholders:

    ${area} * 45 + (${floors} - 1) * 1200

Grammar:
    expr    := term (('+' | '-') term)*
    term    := unary (('*' | '/') unary)*
    unary   := ('-' | '+') unary | primary
    primary := NUMBER | PLACEHOLDER | '(' expr ')'

Unary minus is parsed as (0 - x). There are no names, calls or attribute
access, and nothing from the process environment is reachable. Length,
token count and nesting depth are bounded by FormulaDefaults.

Missing answers evaluate to 0. Everything else that goes wrong raises
EvaluationError carrying the formula and the character position.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Set, Union

from core.config import FormulaDefaults, get_defaults
from core.errors import EvaluationError
from core.logging import ComponentType, get_logger
from orchestrator.engine.conditions import as_number, is_missing

logger = get_logger(__name__, ComponentType.ENGINE)


# ============================================================================
# AST
# ============================================================================

@dataclass(frozen=True)
class Literal:
    value: float


@dataclass(frozen=True)
class Placeholder:
    question_id: str
    position: int = 0


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"
    position: int = 0


Node = Union[Literal, Placeholder, BinaryOp]


# ============================================================================
# TOKENIZER
# ============================================================================

@dataclass(frozen=True)
class Token:
    kind: str       # number | placeholder | op | lparen | rparen | end
    text: str
    position: int


_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<placeholder>\$\{(?P<qid>[A-Za-z0-9_.\-]+)\})
    |(?P<op>[+\-*/])
    |(?P<lparen>\()
    |(?P<rparen>\))
    """,
    re.VERBOSE,
)


def tokenize(formula: str, limits: Optional[FormulaDefaults] = None) -> List[Token]:
    """
    Split a formula into tokens.

    Raises:
        EvaluationError: Unexpected character, too long, or too many tokens
    """
    limits = limits or get_defaults().formula
    if len(formula) > limits.max_length:
        raise EvaluationError(
            f"Formula exceeds {limits.max_length} characters",
            formula=formula,
            position=limits.max_length,
        )

    tokens: List[Token] = []
    pos = 0
    while pos < len(formula):
        match = _TOKEN_RE.match(formula, pos)
        if match is None:
            raise EvaluationError(
                f"Unexpected character {formula[pos]!r}",
                formula=formula,
                position=pos,
            )
        kind = match.lastgroup
        if kind == "qid":
            kind = "placeholder"
        if kind != "ws":
            text = match.group("qid") if kind == "placeholder" else match.group(0)
            tokens.append(Token(kind=kind, text=text, position=pos))
            if len(tokens) > limits.max_tokens:
                raise EvaluationError(
                    f"Formula exceeds {limits.max_tokens} tokens",
                    formula=formula,
                    position=pos,
                )
        pos = match.end()

    tokens.append(Token(kind="end", text="", position=len(formula)))
    return tokens


# ============================================================================
# PARSER
# ============================================================================

class _Parser:
    """Recursive descent over a token list, bounded by max_depth."""

    def __init__(self, formula: str, tokens: List[Token], max_depth: int):
        self.formula = formula
        self.tokens = tokens
        self.max_depth = max_depth
        self.index = 0
        self.depth = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _error(self, message: str, token: Token) -> EvaluationError:
        return EvaluationError(message, formula=self.formula, position=token.position)

    def _enter(self, token: Token) -> None:
        self.depth += 1
        if self.depth > self.max_depth:
            raise self._error(f"Formula nesting exceeds {self.max_depth}", token)

    def parse(self) -> Node:
        if self.current.kind == "end":
            raise self._error("Empty formula", self.current)
        node = self._expr()
        if self.current.kind != "end":
            raise self._error(f"Unexpected {self.current.text!r}", self.current)
        return node

    def _expr(self) -> Node:
        node = self._term()
        while self.current.kind == "op" and self.current.text in "+-":
            token = self._advance()
            node = BinaryOp(token.text, node, self._term(), token.position)
        return node

    def _term(self) -> Node:
        node = self._unary()
        while self.current.kind == "op" and self.current.text in "*/":
            token = self._advance()
            node = BinaryOp(token.text, node, self._unary(), token.position)
        return node

    def _unary(self) -> Node:
        token = self.current
        if token.kind == "op" and token.text in "+-":
            self._advance()
            self._enter(token)
            operand = self._unary()
            self.depth -= 1
            if token.text == "+":
                return operand
            return BinaryOp("-", Literal(0.0), operand, token.position)
        return self._primary()

    def _primary(self) -> Node:
        token = self._advance()
        if token.kind == "number":
            value = float(token.text)
            if not math.isfinite(value):
                raise self._error(f"Number out of range: {token.text}", token)
            return Literal(value)
        if token.kind == "placeholder":
            return Placeholder(token.text, token.position)
        if token.kind == "lparen":
            self._enter(token)
            node = self._expr()
            if self.current.kind != "rparen":
                raise self._error("Expected ')'", self.current)
            self._advance()
            self.depth -= 1
            return node
        if token.kind == "end":
            raise self._error("Unexpected end of formula", token)
        raise self._error(f"Unexpected {token.text!r}", token)


def parse_formula(formula: str, limits: Optional[FormulaDefaults] = None) -> Node:
    """
    Parse a formula into an AST.

    Raises:
        EvaluationError: Syntax error or limit violation
    """
    limits = limits or get_defaults().formula
    tokens = tokenize(formula, limits)
    return _Parser(formula, tokens, limits.max_depth).parse()


def placeholders(formula: str) -> Set[str]:
    """Question ids referenced by a formula (tokenizer-level, no parse)."""
    return {t.text for t in tokenize(formula) if t.kind == "placeholder"}


# ============================================================================
# EVALUATION
# ============================================================================

def _evaluate(node: Node, answers: Mapping[str, Any], formula: str) -> float:
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, Placeholder):
        answer = answers.get(node.question_id)
        if is_missing(answer):
            return 0.0
        number = as_number(answer)
        if number is None:
            raise EvaluationError(
                f"Answer to '{node.question_id}' is not numeric: {answer!r}",
                formula=formula,
                position=node.position,
            )
        return number

    left = _evaluate(node.left, answers, formula)
    right = _evaluate(node.right, answers, formula)
    if node.op == "+":
        result = left + right
    elif node.op == "-":
        result = left - right
    elif node.op == "*":
        result = left * right
    else:
        if right == 0:
            raise EvaluationError(
                "Division by zero",
                formula=formula,
                position=node.position,
            )
        result = left / right

    if not math.isfinite(result):
        raise EvaluationError(
            "Formula result is not finite",
            formula=formula,
            position=node.position,
        )
    return result


def evaluate_formula(
    formula: Union[str, Node],
    answers: Mapping[str, Any],
    limits: Optional[FormulaDefaults] = None,
) -> float:
    """
    Evaluate a formula (string or parsed AST) against an answer set.

    Returns:
        Finite float result

    Raises:
        EvaluationError: Any parse or evaluation failure
    """
    if isinstance(formula, str):
        source = formula
        node = parse_formula(formula, limits)
    else:
        source = None
        node = formula
    return _evaluate(node, answers, source)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "Literal",
    "Placeholder",
    "BinaryOp",
    "Node",
    "Token",
    "tokenize",
    "parse_formula",
    "evaluate_formula",
    "placeholders",
]
