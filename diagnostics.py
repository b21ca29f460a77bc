# diagnostics.py
#
# MIT License
#
# Copyright (c) 2025 Chris Cullin

import argparse
import numpy as np
import physics_functions as pf
import constants as c
from engine_model import EngineModel, Controls
from physics_validator import PhysicsValidator


def run_revolution_audit(omega, lift, step_deg=15):
    """
    Piston kinematics and the resulting chamber pressure over one revolution
    at a held shaft speed. Pressure uses the same branch logic as the tick.
    """
    theta = np.deg2rad(np.arange(0, 360 + step_deg, step_deg))
    area = pf.piston_area(c.BORE)
    position = pf.piston_position(theta, c.RADIUS_CRANK, c.LEN_CONROD)
    velocity = pf.piston_velocity(theta, omega, c.RADIUS_CRANK, c.LEN_CONROD)
    volume = pf.chamber_volume(area, c.STROKE, c.LEN_CONROD, position)
    valve_area = pf.frustum_lsa(c.EXHAUST_VALVE_RADIUS, c.EXHAUST_SEAT_RADIUS, lift)
    branch = "bernoulli" if valve_area > c.VALVE_AREA_THRESHOLD else "proportional"

    print("=" * 80)
    print(f"REVOLUTION AUDIT | omega: {omega} rad/s ({pf.rad_s_to_rpm(omega):.0f} RPM) "
          f"| lift: {lift * 1000:.1f} mm | {branch}")
    print("=" * 80)
    print(f"{'CAD':>5} | {'x (mm)':>9} | {'v (m/s)':>9} | {'V (cc)':>9} | {'P (kPa)':>10}")
    print("-" * 80)

    for th, x, v, vol in zip(theta, position, velocity, volume):
        p = pf.chamber_pressure(
            v, area, x, c.LEN_CONROD, c.STROKE, c.P_ATM_PA,
            c.EXHAUST_VALVE_RADIUS, c.EXHAUST_SEAT_RADIUS, lift,
        )
        print(f"{np.rad2deg(th):5.0f} | {x * 1000:9.3f} | {v:9.3f} | {vol * 1e6:9.2f} | {p / 1000:10.3f}")
    print("=" * 80)


def run_geometry_check(crank_radius, rod_length, stroke):
    print("=" * 60)
    print(f"GEOMETRY CHECK | r: {crank_radius} m  L: {rod_length} m  stroke: {stroke} m")
    print("=" * 60)
    errors = pf.geometry_errors(crank_radius, rod_length, stroke)
    if not errors:
        print("  [PASS] crank-slider formulas stay real-valued for all angles")
    for e in errors:
        print(f"  [FAIL] {e}")

    theta = np.linspace(0.0, 2.0 * np.pi, 361)
    position = pf.piston_position(theta, crank_radius, rod_length)
    bad = np.count_nonzero(~np.isfinite(position))
    print(f"  Non-finite piston positions over one revolution: {bad}/361")
    print("=" * 60)


def run_stability_audit(torque, seconds):
    """Full model under constant torque at several frame times."""
    print("=" * 70)
    print(f"STABILITY AUDIT | torque: {torque} Nm | {seconds} s simulated")
    print("=" * 70)
    print(f"{'dt (s)':>10} | {'ticks':>7} | {'RPM':>10} | {'resets':>6} | {'finite'}")
    for dt in (1.0 / 2500, 1.0 / 240, 1.0 / 60, 0.1, 0.25):
        engine = EngineModel()
        controls = Controls(external_torque=torque, exhaust_valve_lift=0.0)
        ticks = max(1, int(round(seconds / dt)))
        for _ in range(ticks):
            engine.step(controls, dt)
        telemetry = engine.get_telemetry()
        print(f"{dt:10.5f} | {ticks:7d} | {telemetry['rpm']:10.2f} | "
              f"{engine.nan_resets:6d} | {engine.is_finite()}")
    print("=" * 70)
    PhysicsValidator()._generate_stability_report()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--test", choices=["revolution", "geometry", "stability"], required=True)
    parser.add_argument("--omega", type=float, default=100.0)
    parser.add_argument("--lift", type=float, default=0.0)
    parser.add_argument("--radius", type=float, default=c.RADIUS_CRANK)
    parser.add_argument("--rod", type=float, default=c.LEN_CONROD)
    parser.add_argument("--stroke", type=float, default=c.STROKE)
    parser.add_argument("--torque", type=float, default=c.TORQUE_COMMAND_NM)
    parser.add_argument("--seconds", type=float, default=1.0)

    args = parser.parse_args()

    if args.test == "revolution": run_revolution_audit(args.omega, args.lift)
    elif args.test == "geometry": run_geometry_check(args.radius, args.rod, args.stroke)
    elif args.test == "stability": run_stability_audit(args.torque, args.seconds)
