r"""Free-form deformation (FFD) regularization terms."""

from typing import Optional

from torch import Tensor

from ..spatial.nonrigid import FreeFormDeformation2d

from .base import TransformLoss
from . import functional as L


class FFDCurvature(TransformLoss):
    r"""Curvature operator of cubic B-spline free-form deformation."""

    def forward(
        self, transform: FreeFormDeformation2d, points: Tensor, mask: Optional[Tensor] = None
    ) -> Tensor:
        r"""Evaluate loss term for given free-form deformation at given points."""
        if not isinstance(transform, FreeFormDeformation2d):
            raise TypeError(f"{type(self).__name__}() 'transform' must be FreeFormDeformation2d")
        return L.curvature_loss(
            transform.grid(), transform.data(), points, mask=mask, reduction=self.reduction
        )


FFDCurvatureLoss = FFDCurvature
