from typing import List


def levenshtein_distance(a: str, b: str) -> int:
    """
    Classic edit distance: single-character insert, delete and substitute,
    each costing 1. Fills the whole (len(b)+1) x (len(a)+1) table.
    """
    matrix: List[List[int]] = [[i] + [0] * len(a) for i in range(len(b) + 1)]
    for j in range(len(a) + 1):
        matrix[0][j] = j

    for i in range(1, len(b) + 1):
        for j in range(1, len(a) + 1):
            if b[i - 1] == a[j - 1]:
                matrix[i][j] = matrix[i - 1][j - 1]
            else:
                matrix[i][j] = min(
                    matrix[i - 1][j - 1] + 1,
                    matrix[i][j - 1] + 1,
                    matrix[i - 1][j] + 1,
                )

    return matrix[len(b)][len(a)]


def title_similarity(a: str, b: str) -> float:
    """
    Normalized edit-distance similarity in [0, 1] on lower-cased strings:
    (longest - distance) / longest. Two empty strings are identical (1.0).
    """
    a, b = a.lower(), b.lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest
