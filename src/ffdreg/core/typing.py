r"""Type annotations for torch functions."""

from pathlib import Path
from typing import Sequence, Tuple, Union

import torch
from torch import Tensor
from typing_extensions import Literal


Device = torch.device
DType = torch.dtype
DTypeStr = Union[torch.dtype, str]
Size2d = Tuple[int, int]  # Order of spatial dimensions: (X, Y)
Scalar = Union[int, float, Tensor]
Array = Union[Sequence[Scalar], Tensor]

PathStr = Union[Path, str]

LossReduction = Literal["none", "mean", "sum"]
