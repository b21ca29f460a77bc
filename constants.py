# constants.py
#
# MIT License
#
# Copyright (c) 2025 Chris Cullin

import numpy as np

# =================================== ENGINE GEOMETRY ===================================
BORE = 0.084  # m       (diameter)
STROKE = 0.09  # m       stroke must be 2 * crank radius
RADIUS_CRANK = 0.045  # m
LEN_CONROD = 0.14435  # m       must be longer than the crank radius
A_PISTON = np.pi * (BORE / 2.0) ** 2  # m²
MOMENT_OF_INERTIA = 0.09  # kg·m²
SHAFT_MU = 0.01  # friction placeholder, not used by the model

# =================================== VALVE DATA ========================================
INTAKE_VALVE_RADIUS = 0.0165  # m
INTAKE_SEAT_RADIUS = 0.015  # m
EXHAUST_VALVE_RADIUS = 0.0145  # m
EXHAUST_SEAT_RADIUS = 0.0135  # m
EXHAUST_LIFT_INITIAL = 0.01  # m, overwritten by the first tick
HEAD_VOLUME = 0.00084  # m³, dormant in the pressure model

# =================================== ENVIRONMENT & INITIAL CONDITIONS ==========
P_ATM_PA = 101325.0  # at sea level (Pa)
P_INTAKE_PA = P_ATM_PA
P_CYL_INITIAL = 3_000_000.0  # Pa

# =================================== PHYSICS CONSTANTS ================================
RHO_AIR = 1.225  # kg/m³
VALVE_AREA_THRESHOLD = 1e-4  # m², below this the exhaust counts as closed
DAMPING_RATE = 10.0  # 1/s
RAD_S_TO_RPM = 30.0 / np.pi

# =================================== CONTROL ==========================================
TORQUE_COMMAND_NM = 100.0
VALVE_LIFT_COMMAND_M = 0.01

# =================================== DISPLAY ==========================================
SCREEN_WIDTH = 1200  # px
SCREEN_HEIGHT = 800  # px
SCALE_PX_PER_M = 3000
SHAFT_PIVOT_PX = (600.0, 600.0)
TARGET_FPS = 2500

# =================================== SIMULATION SETTINGS ==============================
DT_DEFAULT = 1.0 / TARGET_FPS  # s, headless runs
