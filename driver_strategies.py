# driver_strategies.py
#
# MIT License
#
# Copyright (c) 2025 Chris Cullin

import numpy as np


# =============================================================================
# Strategy classes — one per driver mode
# =============================================================================

class BaseStrategy:
    """Produces (torque direction, lift direction), each in {-1, 0, 1}."""

    def driver_update(self, driver, state):
        return 0, 0

    def get_telemetry(self):
        """Return dict of extra keys for dashboard"""
        return {}


class IdleStrategy(BaseStrategy):
    """ No input: the shaft spins down under piston load and damping """


class KeyboardStrategy(BaseStrategy):
    """
    Held-key mapping: d/a drive the shaft forwards/backwards, w/s move the
    exhaust valve. d wins over a and w wins over s when both are held.
    """

    def driver_update(self, driver, state):
        keys = driver.keys_down

        if "d" in keys:
            torque_dir = 1
        elif "a" in keys:
            torque_dir = -1
        else:
            torque_dir = 0

        if "w" in keys:
            lift_dir = 1
        elif "s" in keys:
            lift_dir = -1
        else:
            lift_dir = 0

        return torque_dir, lift_dir

    def get_telemetry(self):
        return {"keys": "d/a torque, w/s exhaust, q quit"}


class CrankStrategy(BaseStrategy):
    """ Starter motor: constant forward torque, valve closed """

    def driver_update(self, driver, state):
        return 1, 0


class BlowdownStrategy(BaseStrategy):
    """ Exhaust held open, no applied torque """

    def driver_update(self, driver, state):
        return 0, 1


class ValveTimingStrategy(BaseStrategy):
    """
    Forward torque with the exhaust opened on the second half of every
    revolution, a crude stand-in for a cam.
    """

    def __init__(self, open_from=np.pi, open_to=2.0 * np.pi):
        self.open_from = open_from
        self.open_to = open_to
        self.valve_open = False

    def driver_update(self, driver, state):
        phase = np.mod(state.shaft.angle, 2.0 * np.pi)
        self.valve_open = bool(self.open_from <= phase < self.open_to)
        return 1, (1 if self.valve_open else 0)

    def get_telemetry(self):
        return {"exhaust": "open" if self.valve_open else "closed"}
