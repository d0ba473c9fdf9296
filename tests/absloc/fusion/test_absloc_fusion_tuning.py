"""Unit tests for absloc.fusion.tuning module."""

import unittest

import numpy as np
from numpy.testing import assert_allclose

from absloc.fusion.tuning import (
    innovation,
    innovation_covariance,
    normalized_innovation_squared,
    prod_jpjt,
)


class TestProdJPJt(unittest.TestCase):
    def test_scalar_projection(self) -> None:
        J = np.array([[1.0, 1.0]])
        P = np.diag([0.5, 0.25])
        assert_allclose(prod_jpjt(P, J), [[0.75]])

    def test_result_is_symmetric(self) -> None:
        rng = np.random.default_rng(0)
        A = rng.normal(size=(7, 7))
        P = A @ A.T
        J = rng.normal(size=(3, 7))
        S = prod_jpjt(P, J)
        self.assertEqual(S.shape, (3, 3))
        assert_allclose(S, S.T, atol=0)
        assert_allclose(S, J @ P @ J.T, rtol=1e-12, atol=1e-12)

    def test_incompatible_shapes(self) -> None:
        with self.assertRaises(ValueError):
            prod_jpjt(np.eye(3), np.ones((2, 4)))
        with self.assertRaises(ValueError):
            prod_jpjt(np.ones((3, 2)), np.ones((2, 3)))


class TestInnovation(unittest.TestCase):
    def test_innovation(self) -> None:
        assert_allclose(innovation([1.0, 2.0], [0.5, 3.0]), [0.5, -1.0])

    def test_innovation_shape_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            innovation(np.zeros(3), np.zeros(2))

    def test_innovation_covariance_adds(self) -> None:
        S = innovation_covariance(np.eye(2), 2.0 * np.eye(2))
        assert_allclose(S, 3.0 * np.eye(2))

    def test_innovation_covariance_shape_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            innovation_covariance(np.eye(2), np.eye(3))


class TestNIS(unittest.TestCase):
    def test_diagonal(self) -> None:
        nis = normalized_innovation_squared(np.array([2.0, 1.0]), np.diag([4.0, 1.0]))
        self.assertAlmostEqual(nis, 2.0)

    def test_matches_explicit_inverse(self) -> None:
        y = np.array([0.3, -0.2, 0.5])
        S = np.array([[2.0, 0.3, 0.1], [0.3, 1.0, 0.2], [0.1, 0.2, 1.5]])
        self.assertAlmostEqual(
            normalized_innovation_squared(y, S), float(y @ np.linalg.inv(S) @ y)
        )

    def test_not_positive_definite(self) -> None:
        with self.assertRaises(ValueError):
            normalized_innovation_squared(np.ones(2), np.diag([1.0, 0.0]))

    def test_dimension_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            normalized_innovation_squared(np.ones(3), np.eye(2))


if __name__ == "__main__":
    unittest.main()
