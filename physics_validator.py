# physics_validator.py
#
# MIT License
#
# Copyright (c) 2025 Chris Cullin

import copy

import numpy as np
from scipy.integrate import solve_ivp

import constants as c
import physics_functions as pf
from engine_model import EngineModel, EngineState, Controls, tick, update_shaft


class PhysicsValidator:
    def __init__(self, omega_start=100.0, spin_time=1.0):
        self.omega_start = omega_start
        self.spin_time = spin_time

        # Reference values for the default geometry
        self.reference_targets = {
            "tdc_position_m": np.sqrt(c.LEN_CONROD**2 - c.RADIUS_CRANK**2),
            "quarter_turn_position_m": c.LEN_CONROD - c.RADIUS_CRANK,
            "closed_valve_pressure_pa": self._closed_valve_reference(),
            "damping_ratio": 1.0 - c.DAMPING_RATE * c.DT_DEFAULT,
            "nan_recovery_omega": 0.0,
            "determinism_delta": 0.0,
            "euler_error_pct_small_dt": 0.0,
        }
        self.tolerance_pct = {
            "tdc_position_m": 1e-6,
            "quarter_turn_position_m": 1e-6,
            "closed_valve_pressure_pa": 1e-6,
            "damping_ratio": 1e-6,
            "euler_error_pct_small_dt": 1.0,
        }

    def _closed_valve_reference(self):
        area = pf.piston_area(c.BORE)
        position = np.sqrt(c.LEN_CONROD**2 - c.RADIUS_CRANK**2)
        v_ref = pf.reference_volume(area, c.STROKE)
        v_curr = pf.chamber_volume(area, c.STROKE, c.LEN_CONROD, position)
        return v_ref * c.P_ATM_PA / v_curr

    # ----------------------------------------------------------------------
    def run_tests(self):
        """Runs the automated battery of physics checks and prints a health report."""
        results = {
            "tdc_position_m": self._test_position(theta=0.0),
            "quarter_turn_position_m": self._test_position(theta=np.pi / 2.0),
            "closed_valve_pressure_pa": self._test_closed_valve_pressure(),
            "damping_ratio": self._test_damping_ratio(),
            "nan_recovery_omega": self._test_nan_recovery(),
            "determinism_delta": self._test_determinism(),
            "euler_error_pct_small_dt": self.euler_error_pct(c.DT_DEFAULT),
        }
        self._generate_report(results)
        self._generate_stability_report()
        return results

    def _test_position(self, theta):
        return float(pf.piston_position(theta, c.RADIUS_CRANK, c.LEN_CONROD))

    def _test_closed_valve_pressure(self):
        state = EngineState()
        tick(state, Controls(external_torque=0.0, exhaust_valve_lift=0.0), dt=0.0)
        return float(state.cylinder.pressure)

    def _test_damping_ratio(self):
        state = EngineState()
        state.shaft.omega = self.omega_start
        state.piston.net_force = 0.0
        update_shaft(state, extra_torque=0.0, dt=c.DT_DEFAULT)
        return float(state.shaft.omega / self.omega_start)

    def _test_nan_recovery(self):
        state = EngineState()
        state.shaft.omega = np.nan
        update_shaft(state, extra_torque=0.0, dt=c.DT_DEFAULT)
        return float(state.shaft.omega)

    def _test_determinism(self):
        controls = Controls(external_torque=c.TORQUE_COMMAND_NM, exhaust_valve_lift=0.0)
        a = EngineModel()
        b = EngineModel(copy.deepcopy(a.state))
        for _ in range(500):
            a.step(controls, c.DT_DEFAULT)
            b.step(controls, c.DT_DEFAULT)
        return float(abs(a.state.shaft.angle - b.state.shaft.angle)
                     + abs(a.state.shaft.omega - b.state.shaft.omega))

    # ----------------------------------------------------------------------
    def free_spin_reference(self):
        """Exact damped free spin, omega' = -k*omega, from scipy."""
        sol = solve_ivp(
            lambda t, y: [-c.DAMPING_RATE * y[0]],
            (0.0, self.spin_time),
            [self.omega_start],
            rtol=1e-10,
            atol=1e-12,
        )
        return float(sol.y[0, -1])

    def euler_free_spin(self, dt):
        """The model's own integrator on the same free spin."""
        omega, theta = self.omega_start, 0.0
        steps = int(round(self.spin_time / dt))
        for _ in range(steps):
            theta, omega, _, _, _ = pf.integrate_shaft(theta, omega, 0.0, c.MOMENT_OF_INERTIA, dt)
        return float(omega)

    def euler_error_pct(self, dt):
        reference = self.free_spin_reference()
        euler = self.euler_free_spin(dt)
        scale = max(abs(reference), 1e-12 * self.omega_start)
        return abs(euler - reference) / scale * 100.0

    def stability_sweep(self, dts=(1.0 / 2500, 1.0 / 240, 1.0 / 60, 0.1, 0.25)):
        """
        Returns rows of (dt, damping factor per step, euler omega, reference omega).
        Forward Euler with damping is stable only while |1 - k*dt| < 1.
        """
        reference = self.free_spin_reference()
        rows = []
        for dt in dts:
            rows.append((dt, 1.0 - c.DAMPING_RATE * dt, self.euler_free_spin(dt), reference))
        return rows

    # ----------------------------------------------------------------------
    def _generate_report(self, results):
        print("\n" + "=" * 72)
        print(f"{'PHYSICS VALIDATION REPORT (SINGLE CYLINDER)':^72}")
        print("=" * 72)
        print(f"{'METRIC':<28} | {'ACTUAL':>12} | {'TARGET':>12} | {'STATUS'}")
        print("-" * 72)

        for key, actual in results.items():
            target = self.reference_targets[key]
            if key == "euler_error_pct_small_dt":
                ok = actual <= self.tolerance_pct[key]
            elif key in self.tolerance_pct:
                ok = np.isclose(actual, target, rtol=self.tolerance_pct[key], atol=0.0)
            else:
                ok = actual == target
            status = "PASS" if ok else "FAIL"
            print(f"{key:<28} | {actual:12.6g} | {target:12.6g} | {status}")
        print("=" * 72)

    def _generate_stability_report(self):
        print(f"\n--- EULER STABILITY (free spin from {self.omega_start} rad/s, "
              f"{self.spin_time} s) ---")
        print(f"{'dt (s)':>10} | {'1-k*dt':>8} | {'euler w':>12} | {'exact w':>12} | verdict")
        for dt, factor, euler, reference in self.stability_sweep():
            verdict = "stable" if abs(factor) < 1.0 else "UNSTABLE"
            print(f"{dt:10.5f} | {factor:8.3f} | {euler:12.5g} | {reference:12.5g} | {verdict}")


if __name__ == "__main__":
    PhysicsValidator().run_tests()
