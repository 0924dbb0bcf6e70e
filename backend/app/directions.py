from __future__ import annotations


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def direction_label(dx: int, dy: int, dz: int = 0) -> str:
    """Name the direction of a connection vector from its signs only.

    +x east, -x west, +y north, -y south, +z up, -z down.
    """
    sx, sy, sz = _sign(dx), _sign(dy), _sign(dz)
    if sx == sy == sz == 0:
        raise ValueError("Connection vector must not be zero")

    horizontal = {1: "north", -1: "south", 0: ""}[sy] + {1: "east", -1: "west", 0: ""}[sx]
    vertical = {1: "up", -1: "down", 0: ""}[sz]
    if horizontal and vertical:
        return f"{horizontal} and {vertical}"
    return horizontal or vertical
