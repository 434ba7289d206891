r"""Abstract base classes of different loss terms."""

from abc import ABCMeta, abstractmethod

from torch import Tensor
from torch.nn import Module

from ..core.typing import LossReduction
from ..spatial.base import ParametricTransform


class TransformLoss(Module, metaclass=ABCMeta):
    r"""Base class of regularization terms evaluated at sample points of a parametric transformation."""

    def __init__(self, reduction: LossReduction = "mean"):
        r"""Initialize regularization term.

        Args:
            reduction: Specifies the reduction to apply to the output: 'none' | 'mean' | 'sum'.

        """
        if reduction not in ("mean", "sum", "none"):
            raise ValueError(f"{type(self).__name__}() 'reduction' must be 'mean', 'sum' or 'none'")
        super().__init__()
        self.reduction = reduction

    @abstractmethod
    def forward(self, transform: ParametricTransform, points: Tensor) -> Tensor:
        r"""Evaluate loss term for given transformation at given points."""
        raise NotImplementedError(f"{type(self).__name__}.forward()")

    def extra_repr(self) -> str:
        return f"reduction={self.reduction!r}"
