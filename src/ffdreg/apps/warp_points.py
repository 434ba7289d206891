r"""Deform points read from a CSV file by a cubic B-spline free-form deformation."""

import logging
import sys
from timeit import default_timer as timer

import pandas as pd
import torch

from ffdreg.core.config import ControlGridConfig
from ffdreg.core.tensor import as_dtype
from ffdreg.spatial import FreeFormDeformation2d, read_transform
from ffdreg.utils.cli import LOG_LEVELS, ArgumentParser, Args
from ffdreg.utils.cli import configure_logging, main_func


log = logging.getLogger("ffdreg.apps.warp_points")


def parser(**kwargs) -> ArgumentParser:
    r"""Construct argument parser."""
    if "description" not in kwargs:
        kwargs["description"] = globals()["__doc__"]
    parser = ArgumentParser(**kwargs)
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "-t", "--transform", help="Free-form deformation file (.yaml, .yml, or .json)"
    )
    group.add_argument(
        "-c", "--config", help="Control grid configuration of zero-valued deformation"
    )
    parser.add_argument("-i", "--input", required=True, help="Input CSV file with points")
    parser.add_argument("-o", "--output", required=True, help="Output CSV file")
    parser.add_argument(
        "--columns",
        nargs=2,
        metavar=("X", "Y"),
        default=("x", "y"),
        help="Names of point coordinate columns",
    )
    parser.add_argument(
        "--jacobian-det",
        action="store_true",
        help="Add column 'jacobian_det' with determinant of spatial Jacobian",
    )
    parser.add_argument(
        "--curvature", action="store_true", help="Add column 'curvature' with curvature operator"
    )
    parser.add_argument(
        "--dtype",
        choices=("float32", "float64"),
        default="float64",
        help="Floating point type of computations",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=LOG_LEVELS,
        default="INFO",
    )
    return parser


def init(args: Args) -> int:
    r"""Initialize logging."""
    configure_logging(log, args)
    return 0


def func(args: Args) -> int:
    r"""Deform points given parsed arguments."""
    dtype = as_dtype(args.dtype)
    if args.transform:
        transform = read_transform(args.transform)
    else:
        config = ControlGridConfig.from_path(args.config)
        transform = FreeFormDeformation2d.from_config(config)
    transform = transform.to(dtype=dtype)
    log.debug(f"Transformation: {transform}")
    table = pd.read_csv(args.input)
    cx, cy = args.columns
    missing = [name for name in (cx, cy) if name not in table.columns]
    if missing:
        log.error(f"Input file {args.input} has no column(s) {', '.join(missing)}")
        return 1
    points = torch.tensor(table[[cx, cy]].to_numpy(), dtype=dtype)
    start = timer()
    with torch.no_grad():
        deformed = transform.transform_points(points)
        output = table.copy()
        output[cx] = deformed[:, 0].numpy()
        output[cy] = deformed[:, 1].numpy()
        if args.jacobian_det:
            output["jacobian_det"] = transform.jacobian_det(points).numpy()
        if args.curvature:
            output["curvature"] = transform.curvature(points).numpy()
    log.info(f"Deformed {len(output)} points in {timer() - start:.3f}s")
    output.to_csv(args.output, index=False)
    log.info(f"Wrote deformed points to {args.output}")
    return 0


main = main_func(parser, func, init=init)


if __name__ == "__main__":
    try:
        exit_code = main()
    except KeyboardInterrupt:
        sys.stderr.write("Execution interrupted by user\n")
        exit_code = 1
    sys.exit(exit_code)
