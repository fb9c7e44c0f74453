"""Flat grid indexing and neighbour tables.

Grids are row-major numpy arrays of shape (height, width). Cell indices are
flat: ``index = y * width + x``. Coordinate system: +X is East, +Y is South.
"""

# 8-neighbourhood: N, NE, E, SE, S, SW, W, NW (clockwise from north)
NEIGHBORS_8: tuple[tuple[int, int], ...] = (
    (0, -1),
    (1, -1),
    (1, 0),
    (1, 1),
    (0, 1),
    (-1, 1),
    (-1, 0),
    (-1, -1),
)

# 4-neighbourhood: N, E, S, W
NEIGHBORS_4: tuple[tuple[int, int], ...] = (
    (0, -1),
    (1, 0),
    (0, 1),
    (-1, 0),
)


def to_index(x: int, y: int, width: int) -> int:
    """Convert (x, y) to a flat cell index."""
    return y * width + x


def from_index(index: int, width: int) -> tuple[int, int]:
    """Convert a flat cell index to (x, y)."""
    y, x = divmod(index, width)
    return x, y


def in_bounds(x: int, y: int, width: int, height: int) -> bool:
    """Check that (x, y) lies on the grid."""
    return 0 <= x < width and 0 <= y < height


def neighbors(
    index: int,
    width: int,
    height: int,
    offsets: tuple[tuple[int, int], ...] = NEIGHBORS_4,
) -> list[int]:
    """Return flat indices of the in-bounds neighbours of a cell.

    Args:
        index: Flat cell index.
        width: Grid width.
        height: Grid height.
        offsets: Neighbour offsets, NEIGHBORS_4 or NEIGHBORS_8.

    Returns:
        Neighbour indices in offset order.
    """
    x, y = from_index(index, width)
    result = []
    for dx, dy in offsets:
        nx, ny = x + dx, y + dy
        if in_bounds(nx, ny, width, height):
            result.append(ny * width + nx)
    return result
