r"""Functions for evaluating a 2D cubic B-spline free-form deformation (FFD) at given points.

The free-form deformation maps a point ``p`` to ``p + u(p)``, where the displacement ``u`` is
the tensor-product cubic B-spline interpolation of the displacement vectors of the 4x4 control
vertices surrounding ``p``. Control vertices outside the grid do not contribute, and the sum of
the remaining weights is not renormalized. Points near the grid border therefore receive a
truncated sum, and points far outside the grid are not displaced at all.

All functions take the :class:`.ControlGrid`, the flat parameter vector of shape ``(2 * nx * ny,)``
with displacements ``(dx, dy)`` in flat vertex order, and a tensor of points of shape ``(N, 2)``.
They are differentiable with respect to the parameters.

"""

from typing import Iterator, Optional, Tuple

import torch
from torch import Tensor

from .grid import ControlGrid
from .kernels import BASIS_OFFSETS, cubic_bspline_weights
from .tensor import as_tensor
from .typing import Array, Device, DType


__all__ = (
    "check_params",
    "check_points",
    "cubic_bspline_neighborhood",
    "cubic_bspline_neighbors",
    "cubic_bspline_weight_sum",
    "transform_points",
    "parametric_jacobian",
    "jacobian_matrix",
    "second_derivative",
    "curvature",
)


def check_params(name: str, grid: ControlGrid, params: Tensor) -> Tensor:
    r"""Check flat parameter vector and reshape it to displacements of shape ``(nx * ny, 2)``."""
    if not isinstance(params, Tensor):
        raise TypeError(f"{name}() 'params' must be torch.Tensor")
    if not params.is_floating_point():
        raise TypeError(f"{name}() 'params' must have floating point dtype")
    if params.ndim != 1 or params.shape[0] != grid.num_params():
        raise ValueError(
            f"{name}() 'params' must have shape ({grid.num_params()},), got {tuple(params.shape)}"
        )
    return params.reshape(grid.numel(), 2)


def check_points(
    name: str,
    points: Array,
    dtype: Optional[DType] = None,
    device: Optional[Device] = None,
) -> Tensor:
    r"""Check that points are given as tensor of shape ``(N, 2)``."""
    points = as_tensor(points)
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError(f"{name}() 'points' must have shape (N, 2), got {tuple(points.shape)}")
    if dtype is None and not points.is_floating_point():
        dtype = torch.float
    return points.to(dtype=dtype, device=device)


def cubic_bspline_neighborhood(grid: ControlGrid, points: Tensor) -> Tuple[Tensor, Tensor]:
    r"""Split grid coordinates of points into tile indices and fractional offsets.

    Args:
        grid: Control vertex grid.
        points: World coordinates of points as tensor of shape ``(N, 2)``.

    Returns:
        tile: 1-based index of control vertex at the lower left corner of the tile containing
            each point as ``torch.long`` tensor of shape ``(N, 2)``.
        offset: Fractional offsets within the tile in ``[0, 1)`` of shape ``(N, 2)``.

    """
    coords = grid.world_to_grid(points)
    tile = coords.floor()
    offset = coords.sub(tile)
    return tile.long(), offset


def cubic_bspline_neighbors(
    grid: ControlGrid, tile: Tensor
) -> Iterator[Tuple[int, int, Tensor, Tensor]]:
    r"""Iterate over the 4x4 control vertices in the support region of each point.

    Args:
        grid: Control vertex grid.
        tile: Tile indices of shape ``(N, 2)`` as returned by :func:`cubic_bspline_neighborhood`.

    Returns:
        Iterator over tuples ``(i, j, mask, vertex)``, where ``i`` and ``j`` are the indices of the
        cubic B-spline pieces along x and y, ``mask`` is a boolean tensor of shape ``(N,)`` which
        indicates whether the neighbor is inside the grid, and ``vertex`` the 0-based flat offset of
        the neighbor vertex. For vertices outside the grid, ``vertex`` refers to the closest vertex
        inside the grid and must be ignored.

    """
    nx, ny = grid.size()
    for i, di in enumerate(BASIS_OFFSETS):
        ix = tile[:, 0] + di
        for j, dj in enumerate(BASIS_OFFSETS):
            iy = tile[:, 1] + dj
            mask = grid.contains(ix, iy)
            vertex = grid.vertex_index(ix.clamp(1, nx), iy.clamp(1, ny))
            yield i, j, mask, vertex


def _weighted_sum(
    grid: ControlGrid, coeffs: Tensor, tile: Tensor, wx: Tensor, wy: Tensor
) -> Tensor:
    r"""Sum of control vertex displacements weighted by tensor product of 1D weights.

    Args:
        grid: Control vertex grid.
        coeffs: Control vertex displacements of shape ``(nx * ny, 2)``.
        tile: Tile indices of shape ``(N, 2)``.
        wx: Weights of cubic B-spline pieces along x of shape ``(N, 4)``.
        wy: Weights of cubic B-spline pieces along y of shape ``(N, 4)``.

    Returns:
        Weighted sum of shape ``(N, 2)``.

    """
    output = torch.zeros((tile.shape[0], 2), dtype=coeffs.dtype, device=coeffs.device)
    for i, j, mask, vertex in cubic_bspline_neighbors(grid, tile):
        term = coeffs[vertex].mul(wx[:, i].mul(wy[:, j]).unsqueeze(1))
        output = output.add(torch.where(mask.unsqueeze(1), term, torch.zeros_like(term)))
    return output


def cubic_bspline_weight_sum(grid: ControlGrid, points: Array) -> Tensor:
    r"""Sum of tensor-product weights of control vertices inside the grid.

    The sum is one for points whose full 4x4 support region lies within the grid, and
    less than one for points close to or outside the grid border.

    Returns:
        Tensor of shape ``(N,)``.

    """
    points = check_points("cubic_bspline_weight_sum", points)
    tile, offset = cubic_bspline_neighborhood(grid, points)
    wx = cubic_bspline_weights(offset[:, 0])
    wy = cubic_bspline_weights(offset[:, 1])
    total = torch.zeros(points.shape[0], dtype=points.dtype, device=points.device)
    for i, j, mask, _ in cubic_bspline_neighbors(grid, tile):
        w = wx[:, i].mul(wy[:, j])
        total = total.add(torch.where(mask, w, torch.zeros_like(w)))
    return total


def transform_points(grid: ControlGrid, params: Tensor, points: Array) -> Tensor:
    r"""Map points by cubic B-spline free-form deformation.

    Args:
        grid: Control vertex grid.
        params: Flat parameter vector of shape ``(2 * nx * ny,)``.
        points: World coordinates of points as tensor of shape ``(N, 2)``.

    Returns:
        Deformed points of shape ``(N, 2)``.

    """
    coeffs = check_params("transform_points", grid, params)
    points = check_points("transform_points", points, dtype=coeffs.dtype, device=coeffs.device)
    tile, offset = cubic_bspline_neighborhood(grid, points)
    wx = cubic_bspline_weights(offset[:, 0])
    wy = cubic_bspline_weights(offset[:, 1])
    return points.add(_weighted_sum(grid, coeffs, tile, wx, wy))


def parametric_jacobian(
    grid: ControlGrid,
    points: Array,
    dtype: Optional[DType] = None,
    device: Optional[Device] = None,
    sparse: bool = False,
) -> Tensor:
    r"""Derivatives of deformed point coordinates with respect to the deformation parameters.

    The deformation is linear in its parameters, and the derivative of a deformed coordinate
    with respect to the same displacement component of a control vertex is the tensor-product
    weight of this vertex. Derivatives with respect to the other component are zero. At most
    32 entries per point are non-zero.

    Args:
        grid: Control vertex grid.
        points: World coordinates of points as tensor of shape ``(N, 2)``.
        dtype: Data type of output tensor.
        device: Device on which to allocate output tensor.
        sparse: Whether to return a sparse COO tensor instead of a strided tensor.

    Returns:
        Tensor of shape ``(2, P, N)``, where ``P = 2 * nx * ny`` is the number of parameters.

    """
    points = check_points("parametric_jacobian", points, dtype=dtype, device=device)
    N = points.shape[0]
    P = grid.num_params()
    tile, offset = cubic_bspline_neighborhood(grid, points)
    wx = cubic_bspline_weights(offset[:, 0])
    wy = cubic_bspline_weights(offset[:, 1])
    point_index = torch.arange(N, device=points.device)
    rows, cols, pnts, vals = [], [], [], []
    for i, j, mask, vertex in cubic_bspline_neighbors(grid, tile):
        w = wx[:, i].mul(wy[:, j])[mask]
        p = point_index[mask]
        col = vertex[mask].mul(2)
        rows.append(torch.zeros_like(col))
        rows.append(torch.ones_like(col))
        cols.append(col)
        cols.append(col.add(1))
        pnts.append(p)
        pnts.append(p)
        vals.append(w)
        vals.append(w)
    indices = torch.stack([torch.cat(rows), torch.cat(cols), torch.cat(pnts)])
    values = torch.cat(vals)
    if sparse:
        jac = torch.sparse_coo_tensor(indices, values, size=(2, P, N))
        return jac.coalesce()
    jac = torch.zeros((2, P, N), dtype=points.dtype, device=points.device)
    jac[indices[0], indices[1], indices[2]] = values
    return jac


def jacobian_matrix(grid: ControlGrid, params: Tensor, points: Array) -> Tensor:
    r"""Spatial Jacobian of cubic B-spline free-form deformation.

    Args:
        grid: Control vertex grid.
        params: Flat parameter vector of shape ``(2 * nx * ny,)``.
        points: World coordinates of points as tensor of shape ``(N, 2)``.

    Returns:
        Jacobian matrices of shape ``(N, 2, 2)``, where ``jac[n, r, c]`` is the derivative of the
        r-th deformed coordinate with respect to the c-th spatial coordinate at the n-th point.

    """
    coeffs = check_params("jacobian_matrix", grid, params)
    points = check_points("jacobian_matrix", points, dtype=coeffs.dtype, device=coeffs.device)
    sx, sy = grid.spacing()
    tile, offset = cubic_bspline_neighborhood(grid, points)
    bx = cubic_bspline_weights(offset[:, 0])
    by = cubic_bspline_weights(offset[:, 1])
    bxd = cubic_bspline_weights(offset[:, 0], derivative=1)
    byd = cubic_bspline_weights(offset[:, 1], derivative=1)
    du_dx = _weighted_sum(grid, coeffs, tile, bxd, by).div(sx)
    du_dy = _weighted_sum(grid, coeffs, tile, bx, byd).div(sy)
    eye = torch.eye(2, dtype=coeffs.dtype, device=coeffs.device)
    return torch.stack([du_dx, du_dy], dim=2).add(eye)  # T(x) = x + u(x)


def second_derivative(grid: ControlGrid, params: Tensor, points: Array, i: int, j: int) -> Tensor:
    r"""Second order spatial derivative of cubic B-spline displacement field.

    Args:
        grid: Control vertex grid.
        params: Flat parameter vector of shape ``(2 * nx * ny,)``.
        points: World coordinates of points as tensor of shape ``(N, 2)``.
        i: First spatial axis, 1 for x and 2 for y.
        j: Second spatial axis, 1 for x and 2 for y.

    Returns:
        Tensor of shape ``(N, 2)`` with the second derivatives of the x and y displacements.

    """
    if i not in (1, 2) or j not in (1, 2) or isinstance(i, bool) or isinstance(j, bool):
        raise ValueError(
            f"second_derivative() 'i' and 'j' must be 1 or 2, got ({i!r}, {j!r})"
        )
    coeffs = check_params("second_derivative", grid, params)
    points = check_points("second_derivative", points, dtype=coeffs.dtype, device=coeffs.device)
    sx, sy = grid.spacing()
    tile, offset = cubic_bspline_neighborhood(grid, points)
    if i == 1 and j == 1:
        wx = cubic_bspline_weights(offset[:, 0], derivative=2)
        wy = cubic_bspline_weights(offset[:, 1])
        scale = sx * sx
    elif i == 2 and j == 2:
        wx = cubic_bspline_weights(offset[:, 0])
        wy = cubic_bspline_weights(offset[:, 1], derivative=2)
        scale = sy * sy
    else:
        wx = cubic_bspline_weights(offset[:, 0], derivative=1)
        wy = cubic_bspline_weights(offset[:, 1], derivative=1)
        scale = sx * sy
    return _weighted_sum(grid, coeffs, tile, wx, wy).div(scale)


def curvature(grid: ControlGrid, params: Tensor, points: Array) -> Tensor:
    r"""Curvature operator of cubic B-spline free-form deformation.

    The second derivatives of the x and y displacements along each axis are summed before
    squaring, i.e., ``(d2u/dx2 + d2v/dx2)**2 + (d2u/dy2 + d2v/dy2)**2``. This differs from
    the per-component bending energy ``sum_c (d2c/dx2**2 + 2 d2c/dxdy**2 + d2c/dy2**2)``.

    Returns:
        Tensor of shape ``(N,)``.

    """
    dxx = second_derivative(grid, params, points, 1, 1)
    dyy = second_derivative(grid, params, points, 2, 2)
    return dxx.sum(dim=1).square().add(dyy.sum(dim=1).square())
