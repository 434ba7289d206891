r"""Base class of parametric spatial coordinate transformations."""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
import logging
from typing import Optional, TypeVar

import torch
from torch import Size, Tensor
from torch.nn import Module, Parameter

from ..core.tensor import as_float_tensor
from ..core.typing import Array, Device, DType


log = logging.getLogger(__name__)

TParametricTransform = TypeVar("TParametricTransform", bound="ParametricTransform")


class ParametricTransform(Module, metaclass=ABCMeta):
    r"""Spatial transformation with flat vector of optimizable parameters.

    A parametric transformation maps points of shape ``(N, D)`` to transformed points of the same
    shape. Its parameters are registered as ``torch.nn.Parameter``, such that they can be updated
    by a ``torch.optim.Optimizer``. Each concrete transformation model owns its parameters; models
    do not share parameter state with each other.

    """

    def __init__(
        self,
        num_params: int,
        dtype: Optional[DType] = None,
        device: Optional[Device] = None,
        requires_grad: bool = True,
    ) -> None:
        r"""Initialize zero-valued transformation parameters.

        Args:
            num_params: Length of flat parameter vector.
            dtype: Data type of parameters. Default is ``torch.float``.
            device: Device on which to store the parameters.
            requires_grad: Whether parameters are optimizable.

        """
        super().__init__()
        if num_params < 0:
            raise ValueError(f"{type(self).__name__}() 'num_params' must be non-negative")
        if dtype is None:
            dtype = torch.float
        data = torch.zeros((num_params,), dtype=dtype, device=device)
        self.params = Parameter(data, requires_grad=requires_grad)

    @property
    @abstractmethod
    def ndim(self) -> int:
        r"""Number of spatial dimensions."""
        raise NotImplementedError(f"{type(self).__name__}.ndim")

    def dim(self) -> int:
        r"""Number of spatial dimensions."""
        return self.ndim

    @property
    def data_shape(self) -> Size:
        r"""Get shape of transformation parameters tensor."""
        return Size((self.num_params(),))

    def num_params(self) -> int:
        r"""Number of transformation parameters."""
        return self.params.shape[0]

    @property
    def dtype(self) -> DType:
        return self.params.dtype

    @property
    def device(self) -> Device:
        return self.params.device

    def data(self) -> Tensor:
        r"""Get flat vector of transformation parameters."""
        return self.params

    @torch.no_grad()
    def data_(self: TParametricTransform, arg: Array) -> TParametricTransform:
        r"""Replace all transformation parameters.

        The storage of the parameters is replaced as a whole rather than modified in place.
        Computations which already obtained a reference to the previous parameter values
        therefore continue to use these.

        Args:
            arg: New parameter values as sequence or tensor of shape ``(P,)``.

        Returns:
            Reference to this transformation.

        Raises:
            ValueError: When ``arg`` does not match the shape of the parameters.

        """
        data = as_float_tensor(arg)
        if data.shape != self.data_shape:
            raise ValueError(
                f"{type(self).__name__}.data_() 'arg' must have shape {tuple(self.data_shape)},"
                f" got {tuple(data.shape)}"
            )
        if data.isnan().any():
            raise ValueError(f"{type(self).__name__}.data_() 'arg' must not be nan")
        data = data.to(dtype=self.dtype, device=self.device, copy=True)
        self.params.data = data
        log.debug(f"{type(self).__name__}.data_() replaced {data.shape[0]} parameters")
        return self

    def forward(self, points: Tensor) -> Tensor:
        r"""Transform points."""
        return self.transform_points(points)

    @abstractmethod
    def transform_points(self, points: Tensor) -> Tensor:
        r"""Transform points of shape ``(N, D)``."""
        raise NotImplementedError(f"{type(self).__name__}.transform_points()")

    @abstractmethod
    def jacobian_matrix(self, points: Tensor) -> Tensor:
        r"""Spatial Jacobian matrices of shape ``(N, D, D)`` at given points."""
        raise NotImplementedError(f"{type(self).__name__}.jacobian_matrix()")

    @abstractmethod
    def parametric_jacobian(self, points: Tensor) -> Tensor:
        r"""Derivatives of shape ``(D, P, N)`` of transformed points with respect to the parameters."""
        raise NotImplementedError(f"{type(self).__name__}.parametric_jacobian()")

    def extra_repr(self) -> str:
        return f"num_params={self.num_params()}"
