"""String similarity used by auto-mapping."""


def levenshtein(left: str, right: str) -> int:
    """Edit distance (insertions, deletions, substitutions) between two strings."""
    if len(left) < len(right):
        left, right = right, left
    if not right:
        return len(left)

    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (left_char != right_char),
            ))
        previous = current
    return previous[-1]


def similarity(left: str, right: str) -> float:
    """
    Case-insensitive similarity in [0, 1]

    1 - distance / longest length; two empty strings are identical.
    """
    left, right = left.lower(), right.lower()
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(left, right) / longest
