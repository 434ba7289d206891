r"""Regular grid of free-form deformation control vertices."""

from __future__ import annotations

import operator
from typing import Any, Optional, Sequence, Tuple, Union

import torch
from torch import Tensor

from .tensor import as_tensor
from .typing import Array, Device, DType, Size2d


class ControlGrid(object):
    r"""Geometry of a regular 2D grid of control vertices.

    Vertices are addressed by 1-based integer indices ``(ix, iy)``, where ``1 <= ix <= nx`` and
    ``1 <= iy <= ny``. The flat vertex index varies fastest along the x axis, and the displacement
    of each vertex occupies two consecutive entries ``(dx, dy)`` of the flat parameter vector.
    Unlike vertex indices, flat offsets into tensors are 0-based.

    """

    __slots__ = ("_size", "_spacing", "_origin")

    def __init__(
        self,
        size: Sequence[int] = (1, 1),
        spacing: Sequence[float] = (1.0, 1.0),
        origin: Sequence[float] = (0.0, 0.0),
    ) -> None:
        r"""Initialize control grid.

        Args:
            size: Number of vertices ``(nx, ny)`` along each axis.
            spacing: Distance between adjacent vertices along each axis.
            origin: World coordinates of vertex ``(1, 1)``.

        """
        if isinstance(size, Tensor):
            size = size.tolist()
        if isinstance(spacing, Tensor):
            spacing = spacing.tolist()
        if isinstance(origin, Tensor):
            origin = origin.tolist()
        if not isinstance(size, Sequence) or len(size) != 2:
            raise ValueError("ControlGrid() 'size' must be sequence of length 2")
        if not isinstance(spacing, Sequence) or len(spacing) != 2:
            raise ValueError("ControlGrid() 'spacing' must be sequence of length 2")
        if not isinstance(origin, Sequence) or len(origin) != 2:
            raise ValueError("ControlGrid() 'origin' must be sequence of length 2")
        for n in size:
            if isinstance(n, bool) or int(n) != n:
                raise TypeError("ControlGrid() 'size' must be integral")
        if any(n < 1 for n in size):
            raise ValueError("ControlGrid() 'size' must be positive")
        if not all(s > 0 for s in spacing):
            raise ValueError("ControlGrid() 'spacing' must be positive")
        self._size: Size2d = (int(size[0]), int(size[1]))
        self._spacing: Tuple[float, float] = (float(spacing[0]), float(spacing[1]))
        self._origin: Tuple[float, float] = (float(origin[0]), float(origin[1]))

    @property
    def ndim(self) -> int:
        r"""Number of spatial dimensions."""
        return 2

    def size(self) -> Size2d:
        r"""Number of vertices ``(nx, ny)``."""
        return self._size

    def spacing(self) -> Tuple[float, float]:
        r"""Distance between adjacent vertices ``(sx, sy)``."""
        return self._spacing

    def origin(self) -> Tuple[float, float]:
        r"""World coordinates of first vertex."""
        return self._origin

    def numel(self) -> int:
        r"""Total number of vertices."""
        return self._size[0] * self._size[1]

    def num_params(self) -> int:
        r"""Length of flat parameter vector with one displacement vector per vertex."""
        return self.ndim * self.numel()

    def check_index(self, ix: int, iy: int) -> Tuple[int, int]:
        r"""Check 1-based vertex index.

        Args:
            ix: Index along x axis. Any integral scalar, such as ``numpy.int64`` or a 0-dimensional
                integer tensor, is accepted.
            iy: Index along y axis.

        Returns:
            Vertex indices converted to ``int``.

        Raises:
            TypeError: When an index is not integral or of type ``bool``.
            IndexError: When ``(ix, iy)`` is outside ``[1, nx] x [1, ny]``.

        """
        if isinstance(ix, bool) or isinstance(iy, bool):
            raise TypeError("ControlGrid vertex indices must be int, not bool")
        try:
            ix = operator.index(ix)
            iy = operator.index(iy)
        except TypeError:
            raise TypeError("ControlGrid vertex indices must be int") from None
        nx, ny = self._size
        if not (1 <= ix <= nx and 1 <= iy <= ny):
            raise IndexError(
                f"ControlGrid vertex index ({ix}, {iy}) out of range [1, {nx}] x [1, {ny}]"
            )
        return ix, iy

    def contains(self, ix: Union[int, Tensor], iy: Union[int, Tensor]) -> Union[bool, Tensor]:
        r"""Whether 1-based vertex indices are inside the grid."""
        nx, ny = self._size
        if isinstance(ix, Tensor) or isinstance(iy, Tensor):
            ix = as_tensor(ix)
            iy = as_tensor(iy)
            return ix.ge(1) & ix.le(nx) & iy.ge(1) & iy.le(ny)
        return 1 <= ix <= nx and 1 <= iy <= ny

    def vertex_index(self, ix: Union[int, Tensor], iy: Union[int, Tensor]) -> Union[int, Tensor]:
        r"""Map 1-based vertex indices to 0-based flat vertex offset.

        This is the only place where the mapping from 2D vertex indices to the flat vertex
        order is defined. The 1-based flat index ``ix + (iy - 1) * nx`` equals the returned
        offset plus one. Indices are not checked, see :meth:`check_index`.

        """
        return (ix - 1) + (iy - 1) * self._size[0]

    def parameter_index(
        self, ix: Union[int, Tensor], iy: Union[int, Tensor]
    ) -> Tuple[Union[int, Tensor], Union[int, Tensor]]:
        r"""Offsets of x and y displacement components of vertex in flat parameter vector."""
        offset = self.vertex_index(ix, iy) * 2
        return offset, offset + 1

    def index_to_world(
        self,
        ix: Union[int, Tensor],
        iy: Union[int, Tensor],
        dtype: Optional[DType] = None,
        device: Optional[Device] = None,
    ) -> Tensor:
        r"""World coordinates of vertices with given 1-based indices."""
        ix = torch.as_tensor(ix, dtype=dtype or torch.float, device=device)
        iy = torch.as_tensor(iy, dtype=ix.dtype, device=ix.device)
        x = ix.sub(1).mul(self._spacing[0]).add(self._origin[0])
        y = iy.sub(1).mul(self._spacing[1]).add(self._origin[1])
        return torch.stack([x, y], dim=-1)

    def world_to_grid(self, points: Array) -> Tensor:
        r"""Map world coordinates to continuous 1-based grid coordinates.

        Args:
            points: World coordinates as tensor of shape ``(..., 2)``.

        Returns:
            Grid coordinates ``(p - origin) / spacing + 1`` of shape ``(..., 2)``.

        """
        points = as_tensor(points)
        if not points.is_floating_point():
            points = points.float()
        if points.ndim < 1 or points.shape[-1] != 2:
            raise ValueError("ControlGrid.world_to_grid() 'points' must have shape (..., 2)")
        origin = torch.tensor(self._origin, dtype=points.dtype, device=points.device)
        spacing = torch.tensor(self._spacing, dtype=points.dtype, device=points.device)
        return points.sub(origin).div(spacing).add(1)

    def vertices(self, dtype: Optional[DType] = None, device: Optional[Device] = None) -> Tensor:
        r"""World coordinates of all vertices as tensor of shape ``(nx * ny, 2)`` in flat order."""
        nx, ny = self._size
        iy, ix = torch.meshgrid(
            torch.arange(1, ny + 1, device=device),
            torch.arange(1, nx + 1, device=device),
            indexing="ij",
        )
        return self.index_to_world(ix.flatten(), iy.flatten(), dtype=dtype, device=device)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ControlGrid):
            return False
        return (
            self._size == other._size
            and self._spacing == other._spacing
            and self._origin == other._origin
        )

    def __hash__(self) -> int:
        return hash((self._size, self._spacing, self._origin))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(size={self._size!r},"
            f" spacing={self._spacing!r}, origin={self._origin!r})"
        )
