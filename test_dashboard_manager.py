import os
import csv
import tempfile
import unittest

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

import constants as c
from dashboard_manager import (
    CONTROL_KEYS,
    DashboardManager,
    linkage_points,
    pin_distance,
    telemetry_lines,
)
from driver_input import DriverInput
from engine_model import Controls, EngineModel, EngineState, tick
from logger import Logger
import main


class FakeKeyEvent:
    def __init__(self, key):
        self.key = key


class TestProjection(unittest.TestCase):

    def test_linkage_points_at_tdc_reference(self):
        state = EngineState()
        tick(state, Controls(), 0.0)
        crank_pin, piston_pin = linkage_points(state)

        x0, y0 = c.SHAFT_PIVOT_PX
        self.assertAlmostEqual(crank_pin[0], x0 + c.RADIUS_CRANK * c.SCALE_PX_PER_M, places=9)
        self.assertAlmostEqual(crank_pin[1], y0, places=9)
        self.assertEqual(piston_pin[0], x0)
        self.assertAlmostEqual(piston_pin[1], y0 - state.piston.position * c.SCALE_PX_PER_M, places=9)

    def test_pin_distance_is_rod_length(self):
        """The drawn rod keeps its length at any crank angle."""
        state = EngineState()
        for theta in np.linspace(0.0, 4.0 * np.pi, 19):
            state.shaft.angle = theta
            tick(state, Controls(), 0.0)
            d = pin_distance(*linkage_points(state))
            self.assertAlmostEqual(d, c.LEN_CONROD * c.SCALE_PX_PER_M, places=6)

    def test_telemetry_lines(self):
        engine = EngineModel()
        engine.step(Controls(), 0.002)
        lines = telemetry_lines(engine.get_telemetry(), distance_px=433.05)
        self.assertTrue(lines[0].startswith("dt:"))
        self.assertIn("2.000000 ms", lines[0])
        self.assertTrue(any(line.startswith("rpm:") for line in lines))
        self.assertTrue(any(line.startswith("dist:") for line in lines))

    def test_telemetry_lines_show_key_hint(self):
        engine = EngineModel()
        hint = DriverInput(mode="keyboard").strategy.get_telemetry()
        lines = telemetry_lines(engine.get_telemetry(), 1.0, hint)
        self.assertTrue(lines[-1].startswith("keys:"))
        self.assertIn("d/a torque", lines[-1])


class TestDashboardManager(unittest.TestCase):

    def test_keys_routed_to_driver(self):
        driver = DriverInput(mode="keyboard")
        dashboard = DashboardManager(driver=driver)

        dashboard.on_key_press(FakeKeyEvent("shift+d"))
        self.assertIn("d", driver.keys_down)
        dashboard.on_key_release(FakeKeyEvent("d"))
        self.assertNotIn("d", driver.keys_down)

        dashboard.on_key_press(FakeKeyEvent("q"))
        self.assertTrue(dashboard.stopped)

    def test_update_and_draw_offscreen(self):
        engine = EngineModel()
        engine.step(Controls(external_torque=100.0), 0.001)
        dashboard = DashboardManager()
        try:
            dashboard.update(engine.state, engine.get_telemetry())
            dashboard.draw()
            self.assertIn("rpm:", dashboard.text.get_text())
            xs, ys = dashboard.rod_line.get_data()
            self.assertEqual(len(xs), 2)
        finally:
            dashboard.close()
        self.assertIsNone(dashboard.fig)

    def test_control_keys_not_bound_to_figure_shortcuts(self):
        """'s' opens the exhaust, so it must not also trigger the save dialog."""
        engine = EngineModel()
        dashboard = DashboardManager(driver=DriverInput(mode="keyboard"))
        try:
            dashboard.update(engine.state, engine.get_telemetry())
            self.assertNotIn("s", plt.rcParams["keymap.save"])
            for name in plt.rcParams:
                if name.startswith("keymap."):
                    for key in CONTROL_KEYS:
                        self.assertNotIn(key, plt.rcParams[name], name)
        finally:
            dashboard.close()

    def test_overlay_shows_exhaust_state(self):
        driver = DriverInput(mode="valve_timing")
        engine = EngineModel()
        dashboard = DashboardManager(driver=driver)
        try:
            engine.step(driver.get_controls(engine.state), 0.0004)
            dashboard.update(engine.state, engine.get_telemetry())
            text = dashboard.text.get_text()
            self.assertIn("exhaust:", text)
            self.assertIn("closed", text)
        finally:
            dashboard.close()


class TestLoggerAndMain(unittest.TestCase):

    def test_logger_writes_header_and_rows(self):
        engine = EngineModel()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "log.csv")
            with Logger(engine.get_telemetry(), path=path) as logger:
                engine.step(Controls(external_torque=100.0), 0.001)
                logger.log(engine.get_telemetry())

            with open(path, newline="") as f:
                rows = list(csv.reader(f))

        self.assertEqual(rows[0][0], "time_s")
        self.assertIn("rpm", rows[0])
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[1][rows[0].index("tick")], "1")

    def test_headless_run(self):
        engine = main.main(["--mode", "crank", "--debug", "--ticks", "200", "--dt", "0.0004"])
        self.assertEqual(engine.tick_count, 200)
        self.assertGreater(engine.state.shaft.omega, 0.0)
        self.assertTrue(engine.is_finite())

    def test_simulation_manager_logs_every_n(self):
        engine = EngineModel()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "log.csv")
            logger = Logger(engine.get_telemetry(), path=path)
            system = main.SimulationManager(DriverInput(mode="crank"), engine, logger, log_every=10)
            system.run_fixed(50, 0.0004)
            logger.close()
            with open(path, newline="") as f:
                rows = list(csv.reader(f))
        self.assertEqual(len(rows), 1 + 5)


if __name__ == "__main__":
    unittest.main()
