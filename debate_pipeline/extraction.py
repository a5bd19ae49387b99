"""
Structured field extraction from free-form agent output.

Agents are asked to end their answers with labeled fields
(``CONFIDENCE: 0.8``, ``KEY_POINTS:`` followed by bullets, ...). Models follow
that format most of the time but not always, so every field is described by a
`FieldSpec` carrying its labels, shape and default, and extraction never
raises: a missing or malformed field simply yields its default.

Grammars (ordered tuples of FieldSpec) for every agent role live at the bottom
of this module so the defaulting behavior can be read and tested in one place.

Example:
    >>> fields = extract_fields("FINAL_ACTION: buy\\nSYMBOLS: aapl, msft", TRADER_GRAMMAR)
    >>> fields["action"], fields["symbols"]
    ('BUY', ('AAPL', 'MSFT'))
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

# --- Documented defaults ---

DEFAULT_SIGNAL = "neutral"
DEFAULT_PERSPECTIVE = "neutral"
DEFAULT_ACTION = "HOLD"
DEFAULT_CONFIDENCE = 0.5
DEFAULT_CONVICTION = 0.5
DEFAULT_POSITION_SIZE_PCT: Optional[float] = None
DEFAULT_APPROVED = False
DEFAULT_SUMMARY_LINE = ""
FALLBACK_TEXT_LENGTH = 500

SIGNAL_CHOICES = ("bullish", "neutral", "bearish")
ACTION_CHOICES = ("BUY", "SELL", "HOLD")
RISK_RECOMMENDATION_CHOICES = ("approve", "adjust", "reject")
UNIT_RANGE = (0.0, 1.0)
PERCENT_RANGE = (0.0, 100.0)

EMPTY_SYMBOL_VALUES = {"", "none", "n/a", "na", "-", "null"}

# A label must not be the tail of a longer identifier (SYMBOLS vs FINAL_SYMBOLS)
_LABEL_START = r"(?<![A-Za-z0-9_])"
# Tolerate markdown bold around the label and/or the value: **LABEL:** **value**
_LABEL_SEPARATOR = r"\**[ \t]*:[ \t*]*"
_BULLET = r"(?:[-*•]|\d+[.)])"
_NUMBER = r"([-+]?(?:\d+(?:\.\d*)?|\.\d+))"
_TICKER = re.compile(r"^[A-Z][A-Z0-9.\-]{0,9}$")


class FieldKind(Enum):
    ENUM = "enum"
    NUMBER = "number"
    BOOLEAN = "boolean"
    LIST = "list"
    TEXT = "text"
    LINE = "line"
    SYMBOLS = "symbols"


@dataclass(frozen=True)
class FieldSpec:
    """
    Declarative description of one extractable field.

    Attributes:
        name: Key in the dict returned by `extract_fields`
        labels: Accepted labels; the earliest occurrence in the text wins.
            ENUM fields skip occurrences whose value is not a choice.
        kind: Shape of the value
        default: Value returned when the field is missing or malformed.
            TEXT fields ignore it and fall back to a prefix of the raw text.
        choices: Allowed values for ENUM fields (canonical spelling)
        bounds: Inclusive (low, high) clamp for NUMBER fields
        stop_at_blank_line: TEXT fields end at the first blank line
    """
    name: str
    labels: Tuple[str, ...]
    kind: FieldKind
    default: Any = None
    choices: Tuple[str, ...] = ()
    bounds: Optional[Tuple[float, float]] = None
    stop_at_blank_line: bool = False


def _labels_pattern(labels: Sequence[str]) -> str:
    alternatives = "|".join(re.escape(label) for label in labels)
    return f"{_LABEL_START}(?:{alternatives}){_LABEL_SEPARATOR}"


def _search(pattern: str, text: str, flags: int = 0) -> Optional["re.Match"]:
    return re.search(pattern, text, re.IGNORECASE | flags)


def _extract_enum(text: str, spec: FieldSpec) -> Any:
    # First labeled occurrence holding an allowed value wins
    pattern = _labels_pattern(spec.labels) + r"([A-Za-z_]+)"
    choices = {choice.lower(): choice for choice in spec.choices}
    for match in re.finditer(pattern, text, re.IGNORECASE):
        raw = match.group(1).lower()
        if raw in choices:
            return choices[raw]
    return spec.default


def _extract_number(text: str, spec: FieldSpec) -> Any:
    match = _search(_labels_pattern(spec.labels) + _NUMBER, text)
    if not match:
        return spec.default
    try:
        value = float(match.group(1))
    except ValueError:
        return spec.default
    if value != value:  # NaN
        return spec.default
    if spec.bounds:
        low, high = spec.bounds
        value = min(high, max(low, value))
    return value


def _extract_boolean(text: str, spec: FieldSpec) -> Any:
    match = _search(_labels_pattern(spec.labels) + r"(true|false|yes|no)\b", text)
    if not match:
        return spec.default
    return match.group(1).lower() in ("true", "yes")


def _extract_list(text: str, spec: FieldSpec) -> Tuple[str, ...]:
    header = _labels_pattern(spec.labels) + r"\n(?:[ \t]*\n)*"
    items = rf"((?:[ \t]*{_BULLET}[ \t]+[^\n]+(?:\n|$))+)"
    match = _search(header + items, text)
    if not match:
        return tuple(spec.default or ())
    lines = []
    for line in match.group(1).split("\n"):
        item = re.sub(rf"^[ \t]*{_BULLET}[ \t]+", "", line).strip()
        if item:
            lines.append(item)
    return tuple(lines)


def _fallback_text(text: str) -> str:
    return text[:FALLBACK_TEXT_LENGTH].strip()


def _next_label_pattern(labels: Sequence[str]) -> str:
    alternatives = "|".join(re.escape(label) for label in labels)
    return rf"\n[ \t]*\**(?:{alternatives})\**[ \t]*:"


def _extract_text(text: str, spec: FieldSpec, stop_labels: Sequence[str] = ()) -> str:
    # Only labels the grammar knows end a section; "AAPL: ..." lines stay in the text
    terminators = [r"\Z"]
    if stop_labels:
        terminators.insert(0, _next_label_pattern(stop_labels))
    if spec.stop_at_blank_line:
        terminators.insert(0, r"\n[ \t]*\n")
    pattern = _labels_pattern(spec.labels) + r"(.*?)(?=" + "|".join(terminators) + ")"
    match = _search(pattern, text, re.DOTALL)
    if not match:
        return _fallback_text(text)
    return match.group(1).strip()


def _extract_line(text: str, spec: FieldSpec) -> Any:
    match = _search(_labels_pattern(spec.labels) + r"([^\n]*)", text)
    if not match:
        return spec.default
    return match.group(1).strip().strip("*").strip()


def _extract_symbols(text: str, spec: FieldSpec) -> Tuple[str, ...]:
    raw = _extract_line(text, FieldSpec(spec.name, spec.labels, FieldKind.LINE, default=""))
    # Drop echoed format hints such as "(comma-separated)"
    raw = re.sub(r"\(.*?\)", "", raw).strip()
    if raw.lower() in EMPTY_SYMBOL_VALUES:
        return ()
    symbols = []
    for token in re.split(r"[,;]", raw):
        symbol = token.strip().strip("*`$").strip().upper()
        if _TICKER.match(symbol) and symbol not in symbols:
            symbols.append(symbol)
    return tuple(symbols)


_EXTRACTORS = {
    FieldKind.ENUM: _extract_enum,
    FieldKind.NUMBER: _extract_number,
    FieldKind.BOOLEAN: _extract_boolean,
    FieldKind.LIST: _extract_list,
    FieldKind.LINE: _extract_line,
    FieldKind.SYMBOLS: _extract_symbols,
}


def extract_field(text: Any, spec: FieldSpec, stop_labels: Sequence[str] = ()) -> Any:
    """
    Extract one field from raw agent output.

    Args:
        text: Raw agent output; None and non-string values are tolerated
        spec: Field description
        stop_labels: Labels that end a TEXT field at the start of a line.
            Without any, a TEXT field runs to the end of the output.

    Returns:
        The typed value, or the field's documented default
    """
    if text is None:
        text = ""
    elif not isinstance(text, str):
        text = str(text)
    if spec.kind is FieldKind.TEXT:
        return _extract_text(text, spec, stop_labels)
    return _EXTRACTORS[spec.kind](text, spec)


def extract_fields(text: Any, grammar: Sequence[FieldSpec]) -> Dict[str, Any]:
    """
    Apply every FieldSpec of a grammar, in order. Pure and idempotent.

    A TEXT field ends where a line opens with another label of the same
    grammar.
    """
    results = {}
    for spec in grammar:
        stop_labels = [label for other in grammar if other is not spec for label in other.labels]
        results[spec.name] = extract_field(text, spec, stop_labels)
    return results


# --- Grammars ---

ANALYST_SIGNAL_LABELS = (
    "MACRO_SIGNAL", "TECHNICAL_SIGNAL", "SENTIMENT_SIGNAL", "NEWS_SIGNAL",
    "RISK_LEVEL",
)

ANALYST_REPORT_GRAMMAR = (
    FieldSpec("signal", ANALYST_SIGNAL_LABELS, FieldKind.ENUM,
              default=DEFAULT_SIGNAL, choices=SIGNAL_CHOICES),
    FieldSpec("confidence", ("CONFIDENCE",), FieldKind.NUMBER,
              default=DEFAULT_CONFIDENCE, bounds=UNIT_RANGE),
    FieldSpec("summary", ("SUMMARY",), FieldKind.TEXT, stop_at_blank_line=True),
    FieldSpec("key_findings", ("KEY_FINDINGS",), FieldKind.LIST, default=()),
)

DEBATE_ARGUMENT_GRAMMAR = (
    FieldSpec("key_points", ("KEY_POINTS",), FieldKind.LIST, default=()),
    FieldSpec("counterpoints", ("COUNTERPOINTS",), FieldKind.LIST, default=()),
)

RISK_ARGUMENT_GRAMMAR = DEBATE_ARGUMENT_GRAMMAR + (
    FieldSpec("recommendation", ("RISK_RECOMMENDATION",), FieldKind.ENUM,
              default=None, choices=RISK_RECOMMENDATION_CHOICES),
)

INVESTMENT_JUDGE_GRAMMAR = (
    FieldSpec("prevailing_perspective", ("PREVAILING_PERSPECTIVE",), FieldKind.ENUM,
              default=DEFAULT_PERSPECTIVE, choices=SIGNAL_CHOICES),
    FieldSpec("confidence", ("CONFIDENCE",), FieldKind.NUMBER,
              default=DEFAULT_CONFIDENCE, bounds=UNIT_RANGE),
    FieldSpec("rationale", ("RATIONALE",), FieldKind.TEXT),
    FieldSpec("key_bull_arguments", ("KEY_BULL_ARGUMENTS",), FieldKind.LIST, default=()),
    FieldSpec("key_bear_arguments", ("KEY_BEAR_ARGUMENTS",), FieldKind.LIST, default=()),
)

TRADER_GRAMMAR = (
    FieldSpec("action", ("FINAL_ACTION",), FieldKind.ENUM,
              default=DEFAULT_ACTION, choices=ACTION_CHOICES),
    FieldSpec("symbols", ("SYMBOLS",), FieldKind.SYMBOLS, default=()),
    FieldSpec("conviction", ("CONVICTION",), FieldKind.NUMBER,
              default=DEFAULT_CONVICTION, bounds=UNIT_RANGE),
    FieldSpec("position_size_pct", ("POSITION_SIZE_PCT",), FieldKind.NUMBER,
              default=DEFAULT_POSITION_SIZE_PCT, bounds=PERCENT_RANGE),
    FieldSpec("reasoning", ("REASONING",), FieldKind.TEXT),
)

# adjusted_action has no fixed default: a silent risk judge keeps the trader's action
RISK_JUDGE_GRAMMAR = (
    FieldSpec("approved", ("APPROVED",), FieldKind.BOOLEAN, default=DEFAULT_APPROVED),
    FieldSpec("adjusted_action", ("ADJUSTED_ACTION",), FieldKind.ENUM,
              default=None, choices=ACTION_CHOICES),
    FieldSpec("risk_adjustments", ("RISK_ADJUSTMENTS",), FieldKind.LIST, default=()),
    FieldSpec("rationale", ("RATIONALE",), FieldKind.TEXT),
    FieldSpec("aggressive_summary", ("AGGRESSIVE_SUMMARY",), FieldKind.LINE,
              default=DEFAULT_SUMMARY_LINE),
    FieldSpec("conservative_summary", ("CONSERVATIVE_SUMMARY",), FieldKind.LINE,
              default=DEFAULT_SUMMARY_LINE),
    FieldSpec("neutral_summary", ("NEUTRAL_SUMMARY",), FieldKind.LINE,
              default=DEFAULT_SUMMARY_LINE),
)

FUND_MANAGER_GRAMMAR = (
    FieldSpec("approved", ("FINAL_APPROVED",), FieldKind.BOOLEAN, default=DEFAULT_APPROVED),
    FieldSpec("final_action", ("FINAL_ACTION",), FieldKind.ENUM,
              default=DEFAULT_ACTION, choices=ACTION_CHOICES),
    FieldSpec("final_symbols", ("FINAL_SYMBOLS",), FieldKind.SYMBOLS, default=()),
    FieldSpec("position_size_pct", ("FINAL_POSITION_SIZE_PCT",), FieldKind.NUMBER,
              default=DEFAULT_POSITION_SIZE_PCT, bounds=PERCENT_RANGE),
    FieldSpec("risk_adjustments_applied", ("RISK_ADJUSTMENTS_APPLIED",), FieldKind.LIST,
              default=()),
    FieldSpec("rationale", ("RATIONALE",), FieldKind.TEXT),
)
