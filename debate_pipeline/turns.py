"""
Turn scheduling shared by the investment and risk debates.

A debate is a fixed speaking order repeated for N rounds. Whenever a
participant speaks it is shown the most recent recorded argument of every
other participant: the current round's if that participant already spoke this
round, otherwise the previous round's. With two roles this gives the classic
bull/bear exchange; with three it gives the aggressive/conservative/neutral
risk round.
"""

from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from debate_pipeline.extraction import extract_fields
from debate_pipeline.models import AgentTaskResult, DebateArgument

# Shown in place of a turn that failed or has not happened yet
EMPTY_ARGUMENT_PLACEHOLDER = "(No argument was recorded for this turn.)"


def schedule(roles: Sequence[str], rounds: int) -> Iterator[Tuple[int, str]]:
    """Yield (round, role) pairs in speaking order. Rounds are 1-based."""
    for round_number in range(1, rounds + 1):
        for role in roles:
            yield round_number, role


def argument_from_result(
    role: str,
    round_number: int,
    result: AgentTaskResult,
    grammar
) -> DebateArgument:
    """
    Turn a debate task result into a DebateArgument.

    A failed task yields an empty argument so the round still counts.
    """
    if not result.succeeded:
        return DebateArgument(role=role, round=round_number)
    fields = extract_fields(result.output_text, grammar)
    return DebateArgument(
        role=role,
        round=round_number,
        argument_text=result.output_text,
        key_points=fields.get("key_points", ()),
        counterpoints=fields.get("counterpoints", ()),
        recommendation=fields.get("recommendation"),
    )


def render_argument(argument: Optional[DebateArgument]) -> str:
    if argument is None or argument.is_empty:
        return EMPTY_ARGUMENT_PLACEHOLDER
    return argument.argument_text.strip()


class DebateTranscript:
    """
    Append-only record of one debate, one history per role.

    Only the engine that owns the transcript records into it; everything it
    hands out is a tuple.
    """

    def __init__(self, roles: Sequence[str]):
        self.roles = tuple(roles)
        self._histories: Dict[str, List[DebateArgument]] = {role: [] for role in self.roles}

    def record(self, argument: DebateArgument) -> None:
        self._histories[argument.role].append(argument)

    def latest(self, role: str) -> Optional[DebateArgument]:
        history = self._histories[role]
        return history[-1] if history else None

    def others_latest(self, role: str) -> Dict[str, Optional[DebateArgument]]:
        """Latest argument of every other role, in speaking order."""
        return {other: self.latest(other) for other in self.roles if other != role}

    def history(self, role: str) -> Tuple[DebateArgument, ...]:
        return tuple(self._histories[role])

    def histories(self) -> Dict[str, Tuple[DebateArgument, ...]]:
        return {role: self.history(role) for role in self.roles}

    @property
    def rounds_recorded(self) -> int:
        return min((len(h) for h in self._histories.values()), default=0)

    def interleaved(self) -> List[DebateArgument]:
        """All arguments ordered by round, then by speaking order."""
        ordered = []
        for index in range(max((len(h) for h in self._histories.values()), default=0)):
            for role in self.roles:
                history = self._histories[role]
                if index < len(history):
                    ordered.append(history[index])
        return ordered

    def render(self, labels: Mapping[str, str]) -> str:
        """Markdown transcript grouped by round, for the judge prompt."""
        blocks = []
        current_round = None
        for argument in self.interleaved():
            if argument.round != current_round:
                current_round = argument.round
                blocks.append(f"### Round {current_round}")
            label = labels.get(argument.role, argument.role)
            blocks.append(f"**{label}:**\n{render_argument(argument)}")
        return "\n\n".join(blocks)
