# physics_functions.py
#
# MIT License
#
# Copyright (c) 2025 Chris Cullin

import numpy as np
import constants as c


def rad_s_to_rpm(omega):
    """Converts angular speed in radians per second to RPM."""
    return omega * c.RAD_S_TO_RPM


# --- Geometric Functions ---


def piston_area(bore):
    """Piston crown area from the cylinder bore (diameter), m^2."""
    return np.pi * (bore / 2.0) ** 2


def force_from_pressure(pressure, area):
    return pressure * area


def piston_position(theta, crank_radius, rod_length):
    """
    Distance of the piston pin from the crank centre along the cylinder axis.

    :param theta: crank angle in radians (unbounded)
    :param crank_radius: m
    :param rod_length: m

    The phase is shifted by pi/2 so theta=0 sits on the TDC reference:
        phi = theta + pi/2
        x = r*cos(phi) + sqrt(L^2 - r^2*sin(phi)^2)

    No guard is applied. If r > L the square root goes negative and the
    result is NaN; recovery happens in the shaft integrator.
    """
    phi = theta + np.pi / 2.0
    sa = np.sin(phi)
    with np.errstate(invalid="ignore"):
        return crank_radius * np.cos(phi) + np.sqrt(
            rod_length * rod_length - crank_radius * crank_radius * sa * sa
        )


def piston_velocity(theta, omega, crank_radius, rod_length):
    """
    Piston pin velocity along the cylinder axis, m/s.

    Time derivative of piston_position:
        v = -omega*r*(sin(phi) + sin(2*phi) / (2*sqrt(n^2 - sin(phi)^2)))
    with n = L/r. Returns NaN/inf when n^2 - sin(phi)^2 <= 0.
    """
    phi = theta + np.pi / 2.0
    sa = np.sin(phi)
    n = rod_length / crank_radius
    with np.errstate(invalid="ignore", divide="ignore"):
        return -omega * crank_radius * (
            sa + np.sin(2.0 * phi) / (2.0 * np.sqrt(n * n - sa * sa))
        )


def frustum_lsa(R, r, h):
    """
    Lateral surface area of the frustum between a lifted valve (radius R)
    and its seat (radius r) at lift h. Used as the exhaust flow area.
    """
    return np.pi * (R + r) * np.sqrt((R - r) * (R - r) + h * h)


def reference_volume(area, stroke):
    """Fixed proxy volume the closed-valve pressure is scaled from."""
    return area * stroke / 2.0


def chamber_volume(area, stroke, rod_length, position):
    return area * (stroke + rod_length - position)


# --- Cylinder Pressure ---


def bernoulli_pressure(piston_vel, area, valve_area, ambient_pressure, rho=c.RHO_AIR):
    """
    Open valve. Gas pushed by the piston accelerates through the valve
    opening; the pressure rise follows the velocity-squared difference.
    """
    vaa = piston_vel * area / valve_area
    return 0.5 * rho * (vaa * vaa - piston_vel * piston_vel) + ambient_pressure


def proportional_pressure(v_ref, v_curr, ambient_pressure):
    """Closed valve. Pressure scales inversely with the chamber volume."""
    with np.errstate(invalid="ignore", divide="ignore"):
        return v_ref * ambient_pressure / v_curr


def chamber_pressure(piston_vel, area, position, rod_length, stroke, ambient_pressure,
                     valve_radius, seat_radius, valve_lift,
                     threshold=c.VALVE_AREA_THRESHOLD, rho=c.RHO_AIR):
    """
    Quasi-static chamber pressure, recomputed from scratch each tick.

    Exactly one branch is taken: Bernoulli when the exhaust flow area is
    above the threshold, proportional volume scaling otherwise. Nothing is
    clamped, so negative pressures are possible under extreme inputs.
    """
    v_ref = reference_volume(area, stroke)
    v_curr = chamber_volume(area, stroke, rod_length, position)
    av = frustum_lsa(valve_radius, seat_radius, valve_lift)

    if av > threshold:
        return bernoulli_pressure(piston_vel, area, av, ambient_pressure, rho)
    return proportional_pressure(v_ref, v_curr, ambient_pressure)


# --- Shaft Dynamics ---


def torque_from_piston_force(fp, theta, L, R):
    """
    Crank-slider conversion of the net piston force to shaft torque, N·m.

        T = Fp*R*(cos(theta) + sin(2*theta) / (2*sqrt(n^2 - sin(theta)^2)))
    """
    n = L / R
    st = np.sin(theta)
    with np.errstate(invalid="ignore", divide="ignore"):
        return fp * R * (np.cos(theta) + np.sin(2.0 * theta) / (2.0 * np.sqrt(n * n - st * st)))


def integrate_shaft(theta, omega, torque, inertia, dt, damping_rate=c.DAMPING_RATE):
    """
    One explicit Euler step of the damped shaft.

    Returns (theta, omega, alpha, omega_reset, theta_reset). A non-finite
    omega or theta after the step is reset to zero and flagged; this is
    the only recovery point for upstream NaNs.
    """
    with np.errstate(invalid="ignore", divide="ignore", over="ignore"):
        alpha = np.float64(torque) / inertia
        omega = omega + alpha * dt
        omega = omega - omega * (damping_rate * dt)
        theta = theta + omega * dt

    omega_reset = not np.isfinite(omega)
    if omega_reset:
        omega = 0.0
    theta_reset = not np.isfinite(theta)
    if theta_reset:
        theta = 0.0

    return theta, omega, alpha, omega_reset, theta_reset


# --- Configuration Checks ---


def geometry_errors(crank_radius, rod_length, stroke, tolerance=1e-9):
    """Returns a list of problems with the engine geometry (empty if valid)."""
    errors = []
    if crank_radius <= 0.0:
        errors.append(f"crank radius must be positive (got {crank_radius} m)")
    if rod_length <= crank_radius:
        errors.append(
            f"rod length {rod_length} m must exceed crank radius {crank_radius} m"
        )
    if abs(stroke - 2.0 * crank_radius) > tolerance:
        errors.append(
            f"stroke {stroke} m should be twice the crank radius ({2.0 * crank_radius} m)"
        )
    return errors
