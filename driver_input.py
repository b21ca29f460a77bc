# driver_input.py
#
# MIT License
#
# Copyright (c) 2025 Chris Cullin

import constants as c
from engine_model import Controls
import driver_strategies as strategies


MODES = ("keyboard", "idle", "crank", "blowdown", "valve_timing")


class DriverInput:
    """Turns the selected driver strategy into a Controls value each frame."""

    def __init__(self, mode="idle", torque_command=c.TORQUE_COMMAND_NM,
                 lift_command=c.VALVE_LIFT_COMMAND_M):
        self.mode = mode
        self.torque_command = torque_command
        self.lift_command = lift_command
        self.keys_down = set()

        self.torque_dir = 0
        self.lift_dir = 0
        self.strategy = self._create_strategy(mode)

    # ---------------------------------------------------------------------------------
    def _create_strategy(self, mode):
        if mode == "keyboard":
            return strategies.KeyboardStrategy()
        elif mode == "idle":
            return strategies.IdleStrategy()
        elif mode == "crank":
            return strategies.CrankStrategy()
        elif mode == "blowdown":
            return strategies.BlowdownStrategy()
        elif mode == "valve_timing":
            return strategies.ValveTimingStrategy()
        raise ValueError(f"Unknown driver mode '{mode}'. Expected one of {MODES}")

    # ---------------------------------------------------------------------------------
    def press(self, key):
        if key:
            self.keys_down.add(key.lower())

    def release(self, key):
        if key:
            self.keys_down.discard(key.lower())

    # ---------------------------------------------------------------------------------
    def get_controls(self, state):
        self.torque_dir, self.lift_dir = self.strategy.driver_update(self, state)
        return Controls(
            external_torque=self.torque_command * self.torque_dir,
            exhaust_valve_lift=self.lift_command * self.lift_dir,
        )
