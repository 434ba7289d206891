import pytest

import torch
from torch.nn import Parameter

from ffdreg.core import bspline as B
from ffdreg.core.config import ControlGridConfig
from ffdreg.spatial import FreeFormDeformation2d, ParametricTransform


@pytest.fixture
def generator() -> torch.Generator:
    return torch.Generator("cpu").manual_seed(123456789)


@pytest.fixture
def ffd(generator: torch.Generator) -> FreeFormDeformation2d:
    transform = FreeFormDeformation2d((6, 5), spacing=(1.5, 2.0), origin=(1, -2), dtype=torch.float64)
    params = torch.randn(transform.num_params(), generator=generator, dtype=torch.float64)
    return transform.data_(params.mul(0.5))


def test_ffd_init() -> None:
    ffd = FreeFormDeformation2d()
    assert isinstance(ffd, ParametricTransform)
    assert ffd.ndim == 2
    assert ffd.dim() == 2
    assert ffd.size() == (1, 1)
    assert ffd.spacing() == (1.0, 1.0)
    assert ffd.origin() == (0.0, 0.0)
    assert ffd.num_params() == 2
    assert ffd.data_shape == (2,)
    assert isinstance(ffd.params, Parameter)
    assert ffd.params.requires_grad
    assert ffd.dtype == torch.float32
    assert ffd.data().eq(0).all()

    ffd = FreeFormDeformation2d((3, 4), spacing=(2, 3), origin=(-1, 1), dtype=torch.float64)
    assert ffd.size() == (3, 4)
    assert ffd.num_params() == 24
    assert ffd.dtype == torch.float64
    assert ffd.data().eq(0).all()
    assert "size=(3, 4)" in repr(ffd)

    with pytest.raises(ValueError):
        FreeFormDeformation2d((0, 2))
    with pytest.raises(ValueError):
        FreeFormDeformation2d((2, 2), spacing=(1, 0))
    with pytest.raises(TypeError):
        ParametricTransform(2)


def test_ffd_from_config() -> None:
    config = ControlGridConfig(size=(4, 3), spacing=(0.5, 0.5), origin=(1, 2))
    ffd = FreeFormDeformation2d.from_config(config)
    assert ffd.size() == (4, 3)
    assert ffd.spacing() == (0.5, 0.5)
    assert ffd.origin() == (1.0, 2.0)
    assert ffd.data().eq(0).all()

    ffd = FreeFormDeformation2d.from_config({"size": [2, 2]}, dtype=torch.float64)
    assert ffd.size() == (2, 2)
    assert ffd.dtype == torch.float64

    with pytest.raises(TypeError):
        FreeFormDeformation2d.from_config({"size": [2.5, 3]})
    with pytest.raises(TypeError):
        FreeFormDeformation2d.from_config("config.yaml")


def test_ffd_vertex_accessors() -> None:
    ffd = FreeFormDeformation2d((3, 4))
    ffd.set_dx(2, 3, 1.5)
    ffd.set_dy(2, 3, -0.5)
    ffd.set_dy(3, 4, 2.0)
    assert ffd.get_dx(2, 3) == 1.5
    assert ffd.get_dy(2, 3) == -0.5
    assert ffd.get_dx(3, 4) == 0
    assert ffd.get_dy(3, 4) == 2
    assert ffd.get_dx(torch.tensor(2), torch.tensor(3)) == 1.5
    ffd.set_dx(torch.tensor(1), 1, 0.25)
    assert ffd.get_dx(1, 1) == 0.25
    ffd.set_dx(1, 1, 0)
    with pytest.raises(TypeError):
        ffd.get_dx(True, 1)
    assert ffd.params.requires_grad
    # Vertex (2, 3) has flat offset (2 - 1) + (3 - 1) * 3 = 7
    params = ffd.data().detach()
    assert params[14] == 1.5
    assert params[15] == -0.5
    assert params[23] == 2
    assert params.ne(0).sum() == 3

    for ix, iy in [(0, 1), (1, 0), (4, 1), (1, 5), (-1, 1), (1, -1)]:
        with pytest.raises(IndexError):
            ffd.get_dx(ix, iy)
        with pytest.raises(IndexError):
            ffd.get_dy(ix, iy)
        with pytest.raises(IndexError):
            ffd.set_dx(ix, iy, 1)
        with pytest.raises(IndexError):
            ffd.set_dy(ix, iy, 1)
    assert ffd.data().ne(0).sum() == 3


def test_ffd_data() -> None:
    for size in [(1, 1), (3, 4), (10, 10)]:
        ffd = FreeFormDeformation2d(size)
        n = 2 * size[0] * size[1]
        params = torch.arange(n, dtype=torch.float)
        assert ffd.data_(params) is ffd
        assert torch.equal(ffd.data(), params)
        ffd.data_(params.tolist())
        assert torch.equal(ffd.data(), params)
        for m in (0, n - 1, n + 1, 2 * n):
            with pytest.raises(ValueError):
                ffd.data_(torch.zeros(m))
        with pytest.raises(ValueError):
            ffd.data_(params.reshape(-1, 2))
        assert torch.equal(ffd.data(), params)

    with pytest.raises(ValueError):
        ffd.data_(torch.full((200,), float("nan")))


def test_ffd_data_snapshot() -> None:
    r"""Replacing parameters does not modify previously obtained parameter tensors."""
    ffd = FreeFormDeformation2d((3, 3))
    snapshot = ffd.data().detach()
    ffd.data_(torch.ones(18))
    assert snapshot.eq(0).all()
    assert ffd.data().eq(1).all()
    assert ffd.params.requires_grad


def test_ffd_parameter_names() -> None:
    ffd = FreeFormDeformation2d((2, 3))
    names = ffd.parameter_names()
    assert len(names) == ffd.num_params()
    assert names[:6] == ["vx_1_1", "vy_1_1", "vx_1_2", "vy_1_2", "vx_2_1", "vy_2_1"]
    assert names[-2:] == ["vx_3_2", "vy_3_2"]


def test_ffd_vertices(ffd: FreeFormDeformation2d) -> None:
    vertices = ffd.vertices()
    assert vertices.shape == (30, 2)
    assert vertices.dtype == torch.float64
    assert torch.allclose(vertices[0], torch.tensor([1.0, -2.0]).double())
    assert torch.allclose(vertices[1], torch.tensor([2.5, -2.0]).double())
    assert torch.allclose(vertices[6], torch.tensor([1.0, 0.0]).double())

    shifts = ffd.vertex_shifts()
    assert shifts.shape == (30, 2)
    assert not shifts.requires_grad
    assert shifts[7, 0] == ffd.get_dx(2, 2)
    assert shifts[7, 1] == ffd.get_dy(2, 2)


def test_ffd_evaluation(ffd: FreeFormDeformation2d, generator: torch.Generator) -> None:
    points = torch.rand((20, 2), generator=generator, dtype=torch.float64).mul(8)
    grid = ffd.grid()
    params = ffd.data().detach()

    output = ffd(points)
    assert output.shape == (20, 2)
    assert torch.allclose(output, ffd.transform_points(points))
    assert torch.allclose(output, B.transform_points(grid, params, points))

    jac = ffd.jacobian_matrix(points)
    assert jac.shape == (20, 2, 2)
    assert torch.allclose(jac, B.jacobian_matrix(grid, params, points))

    det = ffd.jacobian_det(points)
    assert det.shape == (20,)
    expected = jac[:, 0, 0] * jac[:, 1, 1] - jac[:, 0, 1] * jac[:, 1, 0]
    assert torch.allclose(det, expected)

    pjac = ffd.parametric_jacobian(points)
    assert pjac.shape == (2, 60, 20)
    assert pjac.dtype == torch.float64
    assert torch.equal(pjac, B.parametric_jacobian(grid, points))
    assert torch.equal(ffd.parametric_jacobian(points, sparse=True).to_dense(), pjac)

    for i, j in [(1, 1), (1, 2), (2, 1), (2, 2)]:
        d2 = ffd.second_derivative(points, i, j)
        assert d2.shape == (20, 2)
        assert torch.allclose(d2, B.second_derivative(grid, params, points, i, j))
    with pytest.raises(ValueError):
        ffd.second_derivative(points, 1, 3)

    curv = ffd.curvature(points)
    assert curv.shape == (20,)
    assert torch.allclose(curv, B.curvature(grid, params, points))


def test_ffd_identity(generator: torch.Generator) -> None:
    ffd = FreeFormDeformation2d((5, 5), spacing=(3, 2), origin=(-4, -4))
    points = torch.randn((25, 2), generator=generator).mul(10)
    assert torch.allclose(ffd(points), points)
    assert torch.allclose(ffd.jacobian_matrix(points), torch.eye(2).expand(25, 2, 2))
    assert torch.allclose(ffd.jacobian_det(points), torch.ones(25))
    assert ffd.curvature(points).eq(0).all()


def test_ffd_gradient(ffd: FreeFormDeformation2d, generator: torch.Generator) -> None:
    r"""Gradient of sum of deformed coordinates with respect to the parameters."""
    points = torch.rand((15, 2), generator=generator, dtype=torch.float64).mul(8)
    ffd.zero_grad()
    ffd(points).sum().backward()
    assert ffd.params.grad is not None
    expected = ffd.parametric_jacobian(points).sum(dim=(0, 2))
    assert torch.allclose(ffd.params.grad, expected)


def test_ffd_optimize(generator: torch.Generator) -> None:
    r"""Fit free-form deformation to point correspondences with gradient descent."""
    ffd = FreeFormDeformation2d((6, 6), spacing=(2, 2), origin=(0, 0), dtype=torch.float64)
    source = torch.rand((40, 2), generator=generator, dtype=torch.float64).mul(6).add(2)
    target = source.add(torch.tensor([0.3, -0.2], dtype=torch.float64))
    optimizer = torch.optim.Adam(ffd.parameters(), lr=0.02)
    losses = []
    for _ in range(100):
        optimizer.zero_grad()
        loss = ffd(source).sub(target).square().sum(dim=1).mean()
        loss.backward()
        optimizer.step()
        losses.append(loss.item())
    assert losses[-1] < 0.1 * losses[0]
