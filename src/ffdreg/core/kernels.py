r"""Cubic B-spline basis functions.

The uniform cubic B-spline restricted to a single knot interval is made up of four polynomial
pieces. Given the fractional offset ``u`` in ``[0, 1)`` of a point within its tile, piece ``k``
is the weight of the control vertex at relative index ``k - 1``, i.e., piece 0 weights the vertex
to the left of the tile and piece 3 the second vertex to its right.

"""

from typing import Optional

import torch
from torch import Tensor

from .tensor import as_float_tensor
from .typing import Array, Device, DType


BASIS_SIZE = 4
r"""Number of cubic B-spline pieces, i.e., width of the basis support in number of vertices."""

BASIS_OFFSETS = (-1, 0, 1, 2)
r"""Relative control vertex index of each cubic B-spline piece."""


def cubic_bspline_basis(k: int, u: Tensor, derivative: int = 0) -> Tensor:
    r"""Evaluate k-th piece of the cubic B-spline or one of its derivatives.

    Args:
        k: Index of cubic B-spline piece in ``{0, 1, 2, 3}``.
        u: Fractional offsets in ``[0, 1)``.
        derivative: Order of derivative in ``{0, 1, 2}``.

    Returns:
        Tensor of same shape as ``u``.

    """
    if not isinstance(u, Tensor):
        raise TypeError("cubic_bspline_basis() 'u' must be torch.Tensor")
    if derivative == 0:
        if k == 0:
            return (1 - u).pow(3).div(6)
        if k == 1:
            return u.pow(3).mul(3).sub(u.square().mul(6)).add(4).div(6)
        if k == 2:
            return u.pow(3).mul(-3).add(u.square().mul(3)).add(u.mul(3)).add(1).div(6)
        if k == 3:
            return u.pow(3).div(6)
    elif derivative == 1:
        if k == 0:
            return (1 - u).square().mul(-0.5)
        if k == 1:
            return u.square().mul(1.5).sub(u.mul(2))
        if k == 2:
            return u.square().mul(-1.5).add(u).add(0.5)
        if k == 3:
            return u.square().mul(0.5)
    elif derivative == 2:
        if k == 0:
            return 1 - u
        if k == 1:
            return u.mul(3).sub(2)
        if k == 2:
            return 1 - u.mul(3)
        if k == 3:
            return u.clone()
    else:
        raise ValueError("cubic_bspline_basis() 'derivative' must be 0, 1, or 2")
    raise ValueError("cubic_bspline_basis() 'k' must be 0, 1, 2, or 3")


def cubic_bspline_weights(
    u: Array,
    derivative: int = 0,
    dtype: Optional[DType] = None,
    device: Optional[Device] = None,
) -> Tensor:
    r"""Evaluate all four cubic B-spline pieces at given fractional offsets.

    The computation follows MIRTK ``ComputeBSplineIndicesAndWeights()``, where the weights
    are derived from each other rather than evaluating each polynomial separately.

    Args:
        u: Fractional offsets in ``[0, 1)`` as tensor of shape ``(...)``.
        derivative: Order of derivative in ``{0, 1, 2}``.

    Returns:
        Tensor of shape ``(..., 4)``, where ``weights[..., k]`` is the value of the k-th piece.

    """
    u = as_float_tensor(u, dtype=dtype)
    if device is not None:
        u = u.to(device)
    weights = torch.empty(u.shape + (BASIS_SIZE,), dtype=u.dtype, device=u.device)
    if derivative == 0:
        weights[..., 3] = u.pow(3).mul(1 / 6)
        weights[..., 0] = u.mul(u.sub(1)).mul(0.5).add(1 / 6).sub(weights[..., 3])
        weights[..., 2] = u.add(weights[..., 0]).sub(weights[..., 3].mul(2))
        weights[..., 1] = 1 - weights[..., [0, 2, 3]].sum(-1)
    elif derivative == 1:
        weights[..., 3] = u.pow(2).mul(0.5)
        weights[..., 0] = u.sub(weights[..., 3]).sub(0.5)
        weights[..., 2] = weights[..., 0].sub(weights[..., 3].mul(2)).add(1)
        weights[..., 1] = -weights[..., [0, 2, 3]].sum(-1)
    elif derivative == 2:
        weights[..., 3] = u
        weights[..., 0] = 1 - u
        weights[..., 2] = 1 - u.mul(3)
        weights[..., 1] = u.mul(3).sub(2)
    else:
        raise ValueError("cubic_bspline_weights() 'derivative' must be 0, 1, or 2")
    return weights
