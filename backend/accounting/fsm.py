# accounting/fsm.py
"""
Table-driven status machines shared by the document apps.

A machine is a mapping {(status, event): next_status}. transition()
never raises for an illegal move; it returns Rejected so commands can
turn the reason into CommandResult.fail().
"""

from dataclasses import dataclass
from typing import Dict, Tuple, Union


@dataclass(frozen=True)
class Rejected:
    reason: str

    def __bool__(self):
        return False


class StateMachine:
    def __init__(self, name: str, transitions: Dict[Tuple[str, str], str], terminal=()):
        self.name = name
        self.transitions = dict(transitions)
        self.terminal = frozenset(terminal)

    def transition(self, current: str, event: str) -> Union[str, Rejected]:
        # model choices are str enums; compare on the raw value
        current = str(current)
        if current in self.terminal:
            return Rejected(f"{self.name} is {current} and cannot change.")
        nxt = self.transitions.get((current, event))
        if nxt is None:
            return Rejected(f"Cannot {event} a {self.name} in status {current}.")
        return nxt

    def events_from(self, current: str):
        return sorted(event for (status, event) in self.transitions if status == current)
