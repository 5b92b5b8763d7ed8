"""
Dependency Import Paths

Finds every chain through which a dependency is pulled into a project, given
a map from each dependency to the dependencies that import it.
"""

from typing import Dict, Iterable, List, Tuple

PATH_SEPARATOR = " -> "


def get_import_paths(parents_map: Dict[str, Iterable[str]], dependency_id: str) -> List[str]:
    """
    Return all root-to-dependency paths as ``"root -> ... -> dependency"``.

    Roots are dependencies without parents. Uses an explicit stack; a parent
    already on the current path is not revisited, so cycles terminate and
    chains that only loop back never reach a root.

    Args:
        parents_map: Dependency id -> ids of the dependencies importing it
        dependency_id: The dependency to trace back to its roots

    Returns:
        Paths in depth-first discovery order; ``[dependency_id]`` when it is itself a root
    """
    paths: List[str] = []
    # Each entry is a path from dependency_id upward, stored leaf first
    stack: List[Tuple[str, ...]] = [(dependency_id,)]

    while stack:
        path = stack.pop()
        node = path[-1]
        parents = list(parents_map.get(node) or [])
        if not parents:
            paths.append(PATH_SEPARATOR.join(reversed(path)))
            continue

        for parent in reversed(parents):
            if parent in path:
                continue
            stack.append(path + (parent,))

    return paths
