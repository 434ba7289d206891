r"""Low-level tensor utility functions."""

from typing import Optional, Union

import torch
from torch import Tensor

from .typing import Array, Device, DType, DTypeStr, Scalar


def as_tensor(
    arg: Union[Scalar, Array], dtype: Optional[DType] = None, device: Optional[Device] = None
) -> Tensor:
    r"""Create tensor from array if argument is not of type torch.Tensor.

    Unlike ``torch.as_tensor()``, this function preserves the tensor device if ``device=None``.

    """
    if device is None and isinstance(arg, Tensor):
        device = arg.device
    return torch.as_tensor(arg, dtype=dtype, device=device)  # type: ignore


def as_float_tensor(arr: Array, dtype: Optional[DType] = None) -> Tensor:
    r"""Create tensor with floating point type from argument if it is not yet."""
    arr_ = as_tensor(arr, dtype=dtype)
    if not torch.is_floating_point(arr_):
        return arr_.type(torch.float)
    return arr_


def as_dtype(arg: Optional[DTypeStr]) -> Optional[DType]:
    r"""Get ``torch.dtype`` from its name, e.g., "float32" or "torch.float64"."""
    if arg is None or isinstance(arg, torch.dtype):
        return arg
    if not isinstance(arg, str):
        raise TypeError("as_dtype() 'arg' must be torch.dtype or str")
    name = arg[6:] if arg.startswith("torch.") else arg
    dtype = getattr(torch, name, None)
    if not isinstance(dtype, torch.dtype):
        raise ValueError(f"as_dtype() unknown data type {arg!r}")
    return dtype


def dtype_name(dtype: DType) -> str:
    r"""Name of ``torch.dtype`` without "torch." prefix."""
    return str(dtype).split(".")[-1]
