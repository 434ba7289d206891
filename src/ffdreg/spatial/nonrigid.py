r"""Non-rigid transformation models."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

import torch
from torch import Tensor

from ..core import bspline as B
from ..core.config import ControlGridConfig
from ..core.grid import ControlGrid
from ..core.typing import Array, Device, DType, Size2d

from .base import ParametricTransform


class FreeFormDeformation2d(ParametricTransform):
    r"""Cubic B-spline free-form deformation in 2D.

    The deformation is defined by a regular grid of ``nx`` by ``ny`` control vertices with one
    displacement vector per vertex. The flat parameter vector contains the displacements in the
    order ``[dx_11, dy_11, dx_21, dy_21, ..., dx_nx1, dy_nx1, dx_12, dy_12, ..., dx_nxny, dy_nxny]``,
    i.e., iterating along the x axis first. Given a point ``p``, the deformed point is ``p + u(p)``,
    where ``u`` is the tensor-product cubic B-spline interpolation of the displacements of the
    4x4 control vertices around ``p``. Control vertices outside the grid do not contribute.

    """

    def __init__(
        self,
        size: Sequence[int] = (1, 1),
        spacing: Sequence[float] = (1.0, 1.0),
        origin: Sequence[float] = (0.0, 0.0),
        dtype: Optional[DType] = None,
        device: Optional[Device] = None,
        requires_grad: bool = True,
    ) -> None:
        r"""Initialize free-form deformation with zero displacements.

        Args:
            size: Number of control vertices ``(nx, ny)``.
            spacing: Distance between adjacent control vertices along each axis.
            origin: World coordinates of the first control vertex.
            dtype: Data type of parameters. Default is ``torch.float``.
            device: Device on which to store the parameters.
            requires_grad: Whether parameters are optimizable.

        """
        grid = ControlGrid(size=size, spacing=spacing, origin=origin)
        super().__init__(
            grid.num_params(), dtype=dtype, device=device, requires_grad=requires_grad
        )
        self._grid = grid

    @classmethod
    def from_config(
        cls, config: ControlGridConfig, dtype: Optional[DType] = None, device: Optional[Device] = None
    ) -> FreeFormDeformation2d:
        r"""Create zero-valued free-form deformation from grid configuration."""
        if isinstance(config, Mapping):
            config = ControlGridConfig.from_dict(config)
        if not isinstance(config, ControlGridConfig):
            raise TypeError(f"{cls.__name__}.from_config() 'config' must be ControlGridConfig")
        return cls(
            size=config.size,
            spacing=config.spacing,
            origin=config.origin,
            dtype=dtype,
            device=device,
        )

    @property
    def ndim(self) -> int:
        return 2

    def grid(self) -> ControlGrid:
        r"""Control vertex grid."""
        return self._grid

    def size(self) -> Size2d:
        r"""Number of control vertices ``(nx, ny)``."""
        return self._grid.size()

    def spacing(self) -> Sequence[float]:
        return self._grid.spacing()

    def origin(self) -> Sequence[float]:
        return self._grid.origin()

    def _param_index(self, ix: int, iy: int) -> int:
        ix, iy = self._grid.check_index(ix, iy)
        return self._grid.parameter_index(ix, iy)[0]

    def get_dx(self, ix: int, iy: int) -> float:
        r"""Get x displacement of control vertex with 1-based indices ``(ix, iy)``."""
        return float(self.params[self._param_index(ix, iy)])

    def get_dy(self, ix: int, iy: int) -> float:
        r"""Get y displacement of control vertex with 1-based indices ``(ix, iy)``."""
        return float(self.params[self._param_index(ix, iy) + 1])

    @torch.no_grad()
    def set_dx(self, ix: int, iy: int, value: float) -> FreeFormDeformation2d:
        r"""Set x displacement of control vertex with 1-based indices ``(ix, iy)``."""
        self.params[self._param_index(ix, iy)] = value
        return self

    @torch.no_grad()
    def set_dy(self, ix: int, iy: int, value: float) -> FreeFormDeformation2d:
        r"""Set y displacement of control vertex with 1-based indices ``(ix, iy)``."""
        self.params[self._param_index(ix, iy) + 1] = value
        return self

    def parameter_names(self) -> List[str]:
        r"""Names of parameters in the order of the flat parameter vector."""
        nx, ny = self.size()
        names = []
        for iy in range(1, ny + 1):
            for ix in range(1, nx + 1):
                names.append(f"vx_{iy}_{ix}")
                names.append(f"vy_{iy}_{ix}")
        return names

    def vertices(self) -> Tensor:
        r"""World coordinates of control vertices as tensor of shape ``(nx * ny, 2)``."""
        return self._grid.vertices(dtype=self.dtype, device=self.device)

    def vertex_shifts(self) -> Tensor:
        r"""Displacements of control vertices as tensor of shape ``(nx * ny, 2)``."""
        return self.params.detach().reshape(self._grid.numel(), 2).clone()

    def transform_points(self, points: Array) -> Tensor:
        r"""Deform points of shape ``(N, 2)``."""
        return B.transform_points(self._grid, self.params, points)

    def parametric_jacobian(self, points: Array, sparse: bool = False) -> Tensor:
        r"""Derivatives of deformed points with respect to the parameters.

        Args:
            points: Points of shape ``(N, 2)``.
            sparse: Whether to return a sparse COO tensor.

        Returns:
            Tensor of shape ``(2, P, N)``.

        """
        return B.parametric_jacobian(
            self._grid, points, dtype=self.dtype, device=self.device, sparse=sparse
        )

    def jacobian_matrix(self, points: Array) -> Tensor:
        r"""Spatial Jacobian matrices of shape ``(N, 2, 2)``."""
        return B.jacobian_matrix(self._grid, self.params, points)

    def second_derivative(self, points: Array, i: int, j: int) -> Tensor:
        r"""Second derivatives of shape ``(N, 2)`` of the displacement along axes ``i`` and ``j``.

        Axes are 1 for x and 2 for y. The first column contains the derivative of the x
        displacement, and the second column the derivative of the y displacement.

        """
        return B.second_derivative(self._grid, self.params, points, i, j)

    def curvature(self, points: Array) -> Tensor:
        r"""Curvature operator of shape ``(N,)`` at given points."""
        return B.curvature(self._grid, self.params, points)

    def jacobian_det(self, points: Array) -> Tensor:
        r"""Determinant of spatial Jacobian of shape ``(N,)`` at given points."""
        return torch.linalg.det(self.jacobian_matrix(points))

    def to_dict(self) -> Dict[str, Any]:
        r"""Get plain record of this transformation for serialization."""
        from .io import transform_to_dict

        return transform_to_dict(self)

    @classmethod
    def from_dict(
        cls, arg: Mapping[str, Any], device: Optional[Device] = None
    ) -> FreeFormDeformation2d:
        r"""Create transformation from plain record."""
        from .io import transform_from_dict

        return transform_from_dict(arg, device=device)

    def extra_repr(self) -> str:
        return f"size={self.size()!r}, spacing={self.spacing()!r}, origin={self.origin()!r}"
