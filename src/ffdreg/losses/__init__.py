r"""Loss terms for regularizing free-form deformations."""

from .base import TransformLoss

from .bspline import FFDCurvature
from .bspline import FFDCurvatureLoss

from .functional import curvature_loss
from .functional import reduce_loss


__all__ = (
    "FFDCurvature",
    "FFDCurvatureLoss",
    "TransformLoss",
    "curvature_loss",
    "reduce_loss",
)
