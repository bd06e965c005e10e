from collections import defaultdict
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Sequence, Set

from .. import config
from ..models import PlannedAction


def _suffixed(path: Path, n: int) -> Path:
    return path.with_name(f"{path.stem}{config.DUPLICATE_SUFFIX.format(n=n)}{path.suffix}")


def deduplicate(actions: Sequence[PlannedAction]) -> List[PlannedAction]:
    """
    Makes destination paths unique within one batch.

    The first action targeting a path keeps it; every later one gets
    'name__1.jpg', 'name__2.jpg', ... using the lowest suffix no other path
    in the batch already has. Actions without a destination are left alone.
    Returns a new list; when nothing collides the input items are returned
    as they are.
    """
    paths = [a.destination.path for a in actions if a.destination.path is not None]
    if len(paths) == len(set(paths)):
        return list(actions)

    taken: Set[Path] = set(paths)
    seen: Set[Path] = set()
    next_suffix: Dict[Path, int] = defaultdict(lambda: 1)
    result = []

    for action in actions:
        path = action.destination.path
        if path is None or path not in seen:
            if path is not None:
                seen.add(path)
            result.append(action)
            continue

        n = next_suffix[path]
        candidate = _suffixed(path, n)
        while candidate in taken:
            n += 1
            candidate = _suffixed(path, n)
        next_suffix[path] = n + 1
        taken.add(candidate)

        result.append(replace(action, destination=replace(action.destination, path=candidate)))

    return result
