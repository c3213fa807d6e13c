from coderush.models import Problem

PROBLEMS = [
    Problem(
        id="reverseString",
        level="easy",
        title="Reverse String",
        description=(
            "Write a function that reverses a string. The input string is given as an array "
            "of characters. You must do this by modifying the input array in-place with O(1) "
            "extra memory."
        ),
        route="/problem1",
    ),
    Problem(
        id="findPairSum",
        level="medium",
        title="Find Pair Sum",
        description=(
            "Given an array of integers and a target sum, return indices of the two numbers "
            "such that they add up to the target. You may assume that each input would have "
            "exactly one solution, and you may not use the same element twice."
        ),
        route="/problem2",
    ),
    Problem(
        id="minCostPath",
        level="hard",
        title="Minimum Cost Path",
        description=(
            "Given a cost matrix and a position (m, n) in the matrix, find cost of minimum "
            "cost path to reach (m, n) from top left cell (0, 0). You can only traverse down, "
            "right and diagonally lower cells from a given cell."
        ),
        route="/problem3",
    ),
]

LANGUAGES = {
    "python": "Python",
    "java": "Java",
    "cpp": "C++",
}

_BY_LEVEL = {p.level: p for p in PROBLEMS}
_BY_ROUTE = {p.route: p for p in PROBLEMS}


def get_problem_by_level(level: str) -> Problem | None:
    return _BY_LEVEL.get(level)


def get_problem_by_route(route: str) -> Problem | None:
    return _BY_ROUTE.get(route)
