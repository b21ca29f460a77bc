# dashboard_manager.py
#
# MIT License
#
# Copyright (c) 2025 Chris Cullin

import matplotlib.pyplot as plt
from matplotlib.patches import Circle, Wedge
import numpy as np

import constants as c


def linkage_points(state, scale=c.SCALE_PX_PER_M):
    """
    Projects the shaft and piston state into screen pixels (y grows down).

    Returns (crank_pin, piston_pin) as (x, y) tuples.
    """
    shaft, piston = state.shaft, state.piston
    crank_pin = (
        shaft.radius * scale * np.cos(shaft.angle) + shaft.x,
        shaft.radius * scale * np.sin(shaft.angle) + shaft.y,
    )
    piston_pin = (shaft.x, shaft.y - piston.position * scale)
    return crank_pin, piston_pin


def pin_distance(crank_pin, piston_pin):
    """Pin-to-pin distance in pixels; equals the rod length when the kinematics agree."""
    return float(np.hypot(crank_pin[0] - piston_pin[0], crank_pin[1] - piston_pin[1]))


def telemetry_lines(telemetry, distance_px=None, strategy_telemetry=None):
    lines = [
        f"dt:       {telemetry['dt'] * 1000.0:12.6f} ms",
        f"pressure: {telemetry['P_diff']:12.1f} Pa",
        f"rpm:      {telemetry['rpm']:12.3f}",
    ]
    if distance_px is not None:
        lines.append(f"dist:     {distance_px:12.3f} px")
    if telemetry["nan_resets"]:
        lines.append(f"resets:   {telemetry['nan_resets']:12d}")
    for key, value in (strategy_telemetry or {}).items():
        lines.append(f"{key + ':':<10}{value}")
    return lines


CONTROL_KEYS = ("a", "d", "w", "s")


def release_control_keys():
    """Unbinds the driving keys from matplotlib's default shortcuts ('s' saves the figure)."""
    for name in list(plt.rcParams):
        if name.startswith("keymap."):
            bound = plt.rcParams[name]
            plt.rcParams[name] = [k for k in bound if k not in CONTROL_KEYS]


class DashboardManager:
    """Real-time crank/linkage view with a telemetry overlay."""

    def __init__(self, driver=None, scale=c.SCALE_PX_PER_M):
        self.driver = driver
        self.scale = scale
        self.fig = None
        self.ax = None
        self.enabled = True
        self.stopped = False

        self.crank_circle = None
        self.crank_sector = None
        self.rod_line = None
        self.pins = None
        self.text = None

    def get_or_create_figure(self, state):
        if self.fig is None:
            release_control_keys()
            plt.ion()
            self.fig, self.ax = plt.subplots(
                figsize=(c.SCREEN_WIDTH / 100.0, c.SCREEN_HEIGHT / 100.0)
            )
            if self.fig.canvas.manager is not None:
                self.fig.canvas.manager.set_window_title("single cylinder engine")
            self.ax.set_facecolor("skyblue")
            self.ax.set_xlim(0, c.SCREEN_WIDTH)
            self.ax.set_ylim(c.SCREEN_HEIGHT, 0)  # screen coordinates
            self.ax.set_aspect("equal")
            self.ax.axis("off")

            shaft = state.shaft
            radius_px = shaft.radius * self.scale
            self.crank_circle = Circle((shaft.x, shaft.y), radius_px, color="white")
            self.crank_sector = Wedge((shaft.x, shaft.y), radius_px, -10, 10, color="gray")
            self.ax.add_patch(self.crank_circle)
            self.ax.add_patch(self.crank_sector)

            (self.rod_line,) = self.ax.plot([], [], color="black", linewidth=1.5)
            (self.pins,) = self.ax.plot([], [], "o", color="black", markersize=6)
            self.text = self.ax.text(10, 10, "", va="top", ha="left",
                                     fontsize=10, family="monospace")

            self.fig.canvas.mpl_connect("key_press_event", self.on_key_press)
            self.fig.canvas.mpl_connect("key_release_event", self.on_key_release)
            self.fig.canvas.mpl_connect("close_event", self.on_close_event)

        return self.fig, self.ax

    def update(self, state, telemetry):
        if not self.enabled:
            return

        self.get_or_create_figure(state)
        crank_pin, piston_pin = linkage_points(state, self.scale)

        deg = np.degrees(state.shaft.angle)
        self.crank_sector.set_theta1(deg - 10.0)
        self.crank_sector.set_theta2(deg + 10.0)

        xs = [crank_pin[0], piston_pin[0]]
        ys = [crank_pin[1], piston_pin[1]]
        self.rod_line.set_data(xs, ys)
        self.pins.set_data(xs, ys)

        strategy_telemetry = self.driver.strategy.get_telemetry() if self.driver else None
        lines = telemetry_lines(
            telemetry, pin_distance(crank_pin, piston_pin), strategy_telemetry
        )
        self.text.set_text("\n".join(lines))

    def draw(self):
        if self.enabled and self.fig:
            try:
                self.fig.canvas.draw_idle()
                self.fig.canvas.flush_events()
            except RuntimeError as exc:
                # Tk raises once the window has been destroyed
                print(f"Dashboard closed: {exc}")
                self.stopped = True

    def close(self):
        if self.fig:
            plt.close(self.fig)
            self.fig = None

    # ----------------------------------------------------------------------
    @staticmethod
    def _base_key(key):
        # "shift+d" -> "d"
        return key.split("+")[-1] if key else key

    def on_key_press(self, event):
        key = self._base_key(event.key)
        if key == "q":
            self.stopped = True
        elif self.driver is not None:
            self.driver.press(key)

    def on_key_release(self, event):
        if self.driver is not None:
            self.driver.release(self._base_key(event.key))

    def on_close_event(self, event):
        self.stopped = True
