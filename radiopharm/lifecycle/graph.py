"""
Sanity checks for a status transition table.

StatusMachine runs these at import time, so a broken table fails at
startup rather than on the first request that hits the bad edge.
"""
from collections import deque


def validate_machine_graph(statuses, transitions, initial, terminal) -> list[str]:
    """
    Return a list of problems with a transition table (empty when sound).

    A sound table only names declared statuses, gives terminal statuses no
    exits, reaches every status from initial, and lets every status reach
    some terminal status.
    """
    declared = set(statuses)
    problems = []

    if initial not in declared:
        problems.append(f"unknown initial status '{initial}'")
    problems += [f"unknown terminal status '{s}'" for s in terminal if s not in declared]

    for source, targets in transitions.items():
        if source not in declared:
            problems.append(f"exits declared for unknown status '{source}'")
        problems += [f"'{source}' -> '{t}' targets an unknown status" for t in targets if t not in declared]

    problems += [f"terminal status '{s}' has exits" for s in terminal if transitions.get(s)]

    if initial in declared:
        reached = _walk(initial, transitions)
        problems += [f"'{s}' cannot be reached from '{initial}'" for s in statuses if s not in reached]

    ends = set(terminal)
    for status in statuses:
        if status not in ends and not ends & _walk(status, transitions):
            problems.append(f"'{status}' can never reach a terminal status")

    return problems


def _walk(start, transitions) -> set:
    seen = {start}
    pending = deque([start])
    while pending:
        for target in transitions.get(pending.popleft(), ()):
            if target not in seen:
                seen.add(target)
                pending.append(target)
    return seen
