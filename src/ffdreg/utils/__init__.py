r"""Auxiliary modules which are not part of the core deformation model."""
