r"""Cubic B-spline free-form deformation model for 2D image registration."""
