# engine_model.py
#
# MIT License
#
# Copyright (c) 2025 Chris Cullin

import math
from dataclasses import dataclass, field

import numpy as np
import physics_functions as pf
import constants as c


class FixedKeyDictionary(dict):
    """A dictionary that only allows assignments or updates to predefined keys."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._valid_keys = set(self.keys())
        self._is_initialized = True

    def _check_key(self, key):
        if hasattr(self, "_is_initialized") and key not in self._valid_keys:
            raise KeyError(
                f"Attempted to assign a new key '{key}'. "
                f"Only existing keys ({sorted(self._valid_keys)}) are allowed."
            )

    def __setitem__(self, key, value):
        self._check_key(key)
        super().__setitem__(key, value)

    def update(self, other=(), **kwargs):
        """Overrides dict.update() to enforce key restriction."""
        items = dict(other, **kwargs)
        for key in items:
            self._check_key(key)
        super().update(items)

    def setdefault(self, key, default=None):
        self._check_key(key)
        return super().setdefault(key, default)


# =================================================================
# STATE
# =================================================================

@dataclass
class Shaft:
    x: float = c.SHAFT_PIVOT_PX[0]  # fixed pivot, display only
    y: float = c.SHAFT_PIVOT_PX[1]
    angle: float = 0.0  # rad, accumulates without wraparound
    radius: float = c.RADIUS_CRANK
    inertia: float = c.MOMENT_OF_INERTIA
    omega: float = 0.0  # rad/s
    accel: float = 0.0  # rad/s²
    torque: float = 0.0  # N·m
    mu: float = c.SHAFT_MU


@dataclass
class Piston:
    rod_length: float = c.LEN_CONROD
    position: float = 0.0  # m, piston pin from crank centre
    velocity: float = 0.0  # m/s
    area: float = 0.0  # m², filled from the cylinder bore
    in_force: float = 0.0
    out_force: float = 0.0
    net_force: float = 0.0


@dataclass
class Cylinder:
    bore: float = c.BORE
    stroke: float = c.STROKE
    pressure: float = c.P_CYL_INITIAL
    ambient_pressure: float = c.P_ATM_PA


@dataclass
class Head:
    intake_pressure: float = c.P_INTAKE_PA
    head_volume: float = c.HEAD_VOLUME
    exhaust_displacement: float = c.EXHAUST_LIFT_INITIAL
    intake_displacement: float = 0.0
    intake_valve_radius: float = c.INTAKE_VALVE_RADIUS
    intake_seat_radius: float = c.INTAKE_SEAT_RADIUS
    exhaust_valve_radius: float = c.EXHAUST_VALVE_RADIUS
    exhaust_seat_radius: float = c.EXHAUST_SEAT_RADIUS


@dataclass
class Controls:
    external_torque: float = 0.0  # N·m
    exhaust_valve_lift: float = 0.0  # m


@dataclass
class RecoveryReport:
    """Which shaft fields were reset to zero after a non-finite result."""
    omega_reset: bool = False
    theta_reset: bool = False

    @property
    def any(self):
        return self.omega_reset or self.theta_reset


@dataclass
class EngineState:
    shaft: Shaft = field(default_factory=Shaft)
    piston: Piston = field(default_factory=Piston)
    cylinder: Cylinder = field(default_factory=Cylinder)
    head: Head = field(default_factory=Head)
    dt: float = 0.0  # s, last tick


# =================================================================
# UPDATE STAGES
# =================================================================

def update_piston(state):
    """Recomputes piston kinematics and forces. Uses last tick's chamber pressure."""
    shaft, cyl, piston = state.shaft, state.cylinder, state.piston

    piston.area = pf.piston_area(cyl.bore)
    piston.position = pf.piston_position(shaft.angle, shaft.radius, piston.rod_length)
    piston.velocity = pf.piston_velocity(
        shaft.angle, shaft.omega, shaft.radius, piston.rod_length
    )

    piston.in_force = pf.force_from_pressure(cyl.pressure, piston.area)
    piston.out_force = pf.force_from_pressure(cyl.ambient_pressure, piston.area)
    piston.net_force = piston.in_force - piston.out_force


def update_cylinder(state):
    cyl, piston, head = state.cylinder, state.piston, state.head
    cyl.pressure = pf.chamber_pressure(
        piston_vel=piston.velocity,
        area=piston.area,
        position=piston.position,
        rod_length=piston.rod_length,
        stroke=cyl.stroke,
        ambient_pressure=cyl.ambient_pressure,
        valve_radius=head.exhaust_valve_radius,
        seat_radius=head.exhaust_seat_radius,
        valve_lift=head.exhaust_displacement,
    )


def update_shaft(state, extra_torque, dt):
    """
    Converts this tick's piston force to torque and advances the shaft.
    Returns a RecoveryReport; the resets themselves are silent.
    """
    shaft, piston = state.shaft, state.piston

    shaft.torque = pf.torque_from_piston_force(
        piston.net_force, shaft.angle, piston.rod_length, shaft.radius
    ) + extra_torque
    shaft.angle, shaft.omega, shaft.accel, omega_reset, theta_reset = pf.integrate_shaft(
        theta=shaft.angle,
        omega=shaft.omega,
        torque=shaft.torque,
        inertia=shaft.inertia,
        dt=dt,
    )
    return RecoveryReport(omega_reset=omega_reset, theta_reset=theta_reset)


def tick(state, controls, dt):
    """
    Advances the simulation one step: piston -> cylinder -> shaft.
    The order matters: the piston sees last tick's pressure while the
    shaft sees this tick's piston force.
    """
    if dt < 0.0:
        raise ValueError(f"dt must be non-negative (got {dt})")

    state.head.exhaust_displacement = controls.exhaust_valve_lift
    update_piston(state)
    update_cylinder(state)
    report = update_shaft(state, controls.external_torque, dt)
    state.dt = dt
    return report


# =================================================================
# ENGINE MODEL
# =================================================================

class EngineModel:
    def __init__(self, state=None):
        self.state = state if state is not None else EngineState()
        self.tick_count = 0
        self.nan_resets = 0
        self.elapsed_time = 0.0

        self.telemetry_dict = FixedKeyDictionary({
            "theta": 0.0,
            "omega": 0.0,
            "rpm": 0.0,
            "piston_position": 0.0,
            "piston_velocity": 0.0,
            "net_force": 0.0,
            "torque": 0.0,
            "P_cyl": 0.0,
            "P_ambient": 0.0,
            "P_diff": 0.0,
            "exhaust_lift": 0.0,
            "dt": 0.0,
            "tick": 0,
            "nan_resets": 0,
        })

    # ----------------------------------------------------------------------
    def step(self, controls, dt, max_substep=None):
        """
        Advances the engine by dt seconds.

        With max_substep set, dt is split into equal sub-steps no longer
        than max_substep. The default runs a single variable-dt step, as
        does a non-finite dt, which is left to the shaft reset.
        """
        if (max_substep is not None and max_substep > 0.0
                and np.isfinite(dt) and dt > max_substep):
            n_sub = int(math.ceil(dt / max_substep))
        else:
            n_sub = 1
        sub_dt = dt / n_sub

        report = RecoveryReport()
        for _ in range(n_sub):
            sub_report = tick(self.state, controls, sub_dt)
            report.omega_reset |= sub_report.omega_reset
            report.theta_reset |= sub_report.theta_reset
            if sub_report.any:
                self.nan_resets += 1

        self.state.dt = dt
        self.tick_count += 1
        self.elapsed_time += dt
        return report

    # ----------------------------------------------------------------------
    def get_telemetry(self):
        shaft, piston, cyl, head = (
            self.state.shaft, self.state.piston, self.state.cylinder, self.state.head
        )
        self.telemetry_dict.update({
            "theta": float(shaft.angle),
            "omega": float(shaft.omega),
            "rpm": float(pf.rad_s_to_rpm(shaft.omega)),
            "piston_position": float(piston.position),
            "piston_velocity": float(piston.velocity),
            "net_force": float(piston.net_force),
            "torque": float(shaft.torque),
            "P_cyl": float(cyl.pressure),
            "P_ambient": float(cyl.ambient_pressure),
            "P_diff": float(cyl.pressure - cyl.ambient_pressure),
            "exhaust_lift": float(head.exhaust_displacement),
            "dt": float(self.state.dt),
            "tick": self.tick_count,
            "nan_resets": self.nan_resets,
        })
        return self.telemetry_dict

    # ----------------------------------------------------------------------
    def geometry_errors(self):
        return pf.geometry_errors(
            self.state.shaft.radius, self.state.piston.rod_length, self.state.cylinder.stroke
        )

    def is_finite(self):
        """True when every simulated quantity is a finite number."""
        values = [
            self.state.shaft.angle, self.state.shaft.omega,
            self.state.piston.position, self.state.piston.velocity,
            self.state.cylinder.pressure,
        ]
        return bool(np.all(np.isfinite(values)))
