"""End-to-end tests for the absolute-position fusion demo.

Runs the GNSS-like (absolute frame, calibrated first reading) and the
motion-capture-like (relative frame) presets through the full pipeline.
"""

import tempfile
import unittest
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
from numpy.testing import assert_allclose

from ch8_sensor_fusion.absloc_gnss_ekf import (
    evaluate_results,
    load_absloc_dataset,
    plot_results,
    run_absloc_fusion,
    save_absloc_dataset,
    simulate_absloc_dataset,
)


class TestSimulation(unittest.TestCase):
    def test_raw_layout_is_y_x_z(self):
        dataset = simulate_absloc_dataset('mocap', seed=1)
        readings = dataset['readings']
        truth = dataset['truth']
        config = dataset['config']

        self.assertEqual(config['channel_layout'], ['y', 'x', 'z'])
        # Static start: sensor at p0 + T + frame offset (identity orientation)
        expected = truth['p'][0] + np.array(config['lever_arm']) + np.array(config['frame_offset'])
        assert_allclose(readings['data'][0][[1, 0, 2]], expected, atol=0.05)

    def test_unknown_preset(self):
        with self.assertRaises(ValueError):
            simulate_absloc_dataset('radar')

    def test_save_and_load(self):
        dataset = simulate_absloc_dataset('gnss', seed=3)
        with tempfile.TemporaryDirectory() as tmp:
            save_absloc_dataset(dataset, tmp)
            loaded = load_absloc_dataset(tmp)

        assert_allclose(loaded['readings']['data'], dataset['readings']['data'])
        self.assertEqual(loaded['config']['sensor'], dataset['config']['sensor'])


class TestAbslocFusion(unittest.TestCase):
    def test_gnss_absolute_frame(self):
        dataset = simulate_absloc_dataset('gnss', seed=42)
        history = run_absloc_fusion(dataset, verbose=False)

        assert_allclose(history['origin'], np.zeros(3))
        # Calibration replaces the static window by a single reading
        self.assertLess(len(history['t']), len(dataset['readings']['t']))
        self.assertEqual(len(history['nis']), len(history['t']) - 1)

        metrics = evaluate_results(history)
        self.assertLess(metrics['final_error'], 5.0)
        self.assertLess(metrics['rmse_3d'], 5.0)
        self.assertTrue(np.all(np.isfinite(history['nis'])))

    def test_mocap_relative_frame(self):
        dataset = simulate_absloc_dataset('mocap', seed=42)
        history = run_absloc_fusion(dataset, verbose=False)

        first = dataset['readings']['data'][0][[1, 0, 2]]
        assert_allclose(history['origin'], first)
        assert_allclose(history['p_est'][0], np.zeros(3))
        self.assertEqual(len(history['t']), len(dataset['readings']['t']))

        metrics = evaluate_results(history)
        self.assertLess(metrics['final_error'], 0.5)
        self.assertTrue(np.all(history['nis'] >= 0.0))

    def test_plot_to_file(self):
        dataset = simulate_absloc_dataset('mocap', seed=0)
        history = run_absloc_fusion(dataset, verbose=False)
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "absloc.png"
            plot_results(history, save_path=str(path))
            self.assertTrue(path.exists())


if __name__ == "__main__":
    unittest.main()
