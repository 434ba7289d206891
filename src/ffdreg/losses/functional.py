r"""Loss functions based on free-form deformation derivatives."""

from typing import Optional

from torch import Tensor

from ..core import bspline as B
from ..core.grid import ControlGrid
from ..core.typing import Array, LossReduction


__all__ = ("curvature_loss", "reduce_loss")


def reduce_loss(
    loss: Tensor, reduction: LossReduction = "mean", mask: Optional[Tensor] = None
) -> Tensor:
    r"""Reduce loss computed at each point."""
    if reduction not in ("mean", "sum", "none"):
        raise ValueError("reduce_loss() 'reduction' must be 'mean', 'sum' or 'none'")
    if reduction == "none":
        return loss
    if mask is None:
        return loss.mean() if reduction == "mean" else loss.sum()
    value = loss.mul(mask).sum()
    if reduction == "mean":
        numel = mask.expand_as(loss).sum()
        value = value.div(numel)
    return value


def curvature_loss(
    grid: ControlGrid,
    params: Tensor,
    points: Array,
    mask: Optional[Tensor] = None,
    reduction: LossReduction = "mean",
) -> Tensor:
    r"""Curvature operator of cubic B-spline free-form deformation at given points.

    Args:
        grid: Control vertex grid.
        params: Flat parameter vector of shape ``(2 * nx * ny,)``.
        points: Points of shape ``(N, 2)`` at which to evaluate the curvature operator.
        mask: Optional weights of shape ``(N,)`` of the points.
        reduction: Either ``none``, ``mean``, or ``sum``.

    Returns:
        Curvature loss. If ``reduction="none"``, the returned tensor has shape ``(N,)``.

    """
    loss = B.curvature(grid, params, points)
    return reduce_loss(loss, reduction=reduction, mask=mask)
