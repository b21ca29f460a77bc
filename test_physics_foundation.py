import unittest
import numpy as np
import physics_functions as pf
import constants as c


R = c.RADIUS_CRANK
L = c.LEN_CONROD


class TestPistonKinematics(unittest.TestCase):

    def test_position_at_tdc_reference(self):
        """theta=0 puts phi at pi/2: x = sqrt(L^2 - r^2)."""
        x = pf.piston_position(0.0, R, L)
        self.assertAlmostEqual(x, np.sqrt(L**2 - R**2), places=12)
        self.assertAlmostEqual(x, 0.13716, places=5)

    def test_position_at_quarter_turn(self):
        x = pf.piston_position(np.pi / 2.0, R, L)
        self.assertAlmostEqual(x, L - R, places=12)
        self.assertAlmostEqual(x, 0.09935, places=5)

    def test_position_keeps_rod_length(self):
        """The rod joins the crank pin to the piston pin at every angle."""
        for theta in np.linspace(-3.0 * np.pi, 3.0 * np.pi, 73):
            phi = theta + np.pi / 2.0
            x = pf.piston_position(theta, R, L)
            rod = np.hypot(x - R * np.cos(phi), R * np.sin(phi))
            self.assertAlmostEqual(rod, L, places=12)

    def test_position_vectorised(self):
        theta = np.array([0.0, np.pi / 2.0])
        x = pf.piston_position(theta, R, L)
        np.testing.assert_allclose(x, [np.sqrt(L**2 - R**2), L - R], rtol=1e-12)

    def test_velocity_matches_numerical_derivative(self):
        omega = 120.0
        h = 1e-6
        for theta in np.linspace(0.0, 2.0 * np.pi, 25):
            dx = (pf.piston_position(theta + h, R, L) - pf.piston_position(theta - h, R, L)) / (2 * h)
            v = pf.piston_velocity(theta, omega, R, L)
            self.assertAlmostEqual(v, omega * dx, places=5)

    def test_velocity_at_tdc_reference(self):
        v = pf.piston_velocity(0.0, 10.0, R, L)
        self.assertAlmostEqual(v, -10.0 * R, places=12)

    def test_velocity_zero_when_shaft_still(self):
        self.assertEqual(pf.piston_velocity(1.234, 0.0, R, L), 0.0)

    def test_crank_longer_than_rod_gives_nan(self):
        """No guard: r > L leaves the square root negative."""
        self.assertTrue(np.isnan(pf.piston_position(0.0, 0.2, 0.1)))
        self.assertTrue(np.isnan(pf.piston_velocity(0.0, 5.0, 0.2, 0.1)))

    def test_degenerate_ratio_is_non_finite(self):
        """r == L makes n^2 - sin^2(phi) zero at theta=0."""
        v = pf.piston_velocity(0.0, 5.0, 0.1, 0.1)
        self.assertFalse(np.isfinite(v))


class TestCylinderPressure(unittest.TestCase):

    def setUp(self):
        self.area = pf.piston_area(c.BORE)
        self.x = pf.piston_position(0.3, R, L)
        self.v = pf.piston_velocity(0.3, 80.0, R, L)

    def _pressure(self, lift):
        return pf.chamber_pressure(
            self.v, self.area, self.x, L, c.STROKE, c.P_ATM_PA,
            c.EXHAUST_VALVE_RADIUS, c.EXHAUST_SEAT_RADIUS, lift,
        )

    def test_piston_area(self):
        self.assertAlmostEqual(pf.piston_area(c.BORE), c.A_PISTON, places=15)

    def test_frustum_lsa(self):
        # equal radii collapse to a cylinder wall
        self.assertAlmostEqual(pf.frustum_lsa(0.01, 0.01, 0.005), 2 * np.pi * 0.01 * 0.005, places=15)
        expected = np.pi * (0.0145 + 0.0135) * np.sqrt(0.001**2 + 0.01**2)
        self.assertAlmostEqual(pf.frustum_lsa(0.0145, 0.0135, 0.01), expected, places=15)

    def test_closed_valve_is_proportional(self):
        av = pf.frustum_lsa(c.EXHAUST_VALVE_RADIUS, c.EXHAUST_SEAT_RADIUS, 0.0)
        self.assertLessEqual(av, c.VALVE_AREA_THRESHOLD)

        v_ref = self.area * c.STROKE / 2.0
        v_curr = self.area * (c.STROKE + L - self.x)
        self.assertEqual(self._pressure(0.0), v_ref * c.P_ATM_PA / v_curr)

    def test_open_valve_follows_bernoulli(self):
        av = pf.frustum_lsa(c.EXHAUST_VALVE_RADIUS, c.EXHAUST_SEAT_RADIUS, 0.01)
        self.assertGreater(av, c.VALVE_AREA_THRESHOLD)

        vaa = self.v * self.area / av
        expected = 0.5 * c.RHO_AIR * (vaa**2 - self.v**2) + c.P_ATM_PA
        self.assertAlmostEqual(self._pressure(0.01), expected, places=6)

    def test_negative_lift_also_opens(self):
        """The frustum only sees lift squared."""
        self.assertAlmostEqual(self._pressure(-0.01), self._pressure(0.01), places=9)

    def test_open_valve_with_still_piston_is_ambient(self):
        p = pf.chamber_pressure(0.0, self.area, self.x, L, c.STROKE, c.P_ATM_PA,
                                c.EXHAUST_VALVE_RADIUS, c.EXHAUST_SEAT_RADIUS, 0.01)
        self.assertEqual(p, c.P_ATM_PA)

    def test_closed_pressure_range_over_revolution(self):
        """Proportional branch stays between P_atm/3 and P_atm for the default geometry."""
        for theta in np.linspace(0.0, 2.0 * np.pi, 37):
            x = pf.piston_position(theta, R, L)
            p = pf.chamber_pressure(0.0, self.area, x, L, c.STROKE, c.P_ATM_PA,
                                    c.EXHAUST_VALVE_RADIUS, c.EXHAUST_SEAT_RADIUS, 0.0)
            self.assertGreaterEqual(p, c.P_ATM_PA / 3.0 - 1e-6)
            self.assertLessEqual(p, c.P_ATM_PA + 1e-6)


class TestShaftDynamics(unittest.TestCase):

    def test_torque_from_piston_force(self):
        self.assertAlmostEqual(pf.torque_from_piston_force(1000.0, 0.0, L, R), 1000.0 * R, places=12)
        self.assertAlmostEqual(pf.torque_from_piston_force(1000.0, np.pi / 2.0, L, R), 0.0, places=9)

        theta = 0.7
        n = L / R
        expected = 500.0 * R * (np.cos(theta) + np.sin(2 * theta) / (2 * np.sqrt(n**2 - np.sin(theta)**2)))
        self.assertAlmostEqual(pf.torque_from_piston_force(500.0, theta, L, R), expected, places=12)

    def test_integrate_applies_euler_then_damping(self):
        theta, omega, alpha, o_reset, t_reset = pf.integrate_shaft(
            theta=1.0, omega=50.0, torque=9.0, inertia=0.09, dt=0.001
        )
        self.assertAlmostEqual(alpha, 100.0, places=12)
        expected_omega = (50.0 + 100.0 * 0.001) * (1.0 - c.DAMPING_RATE * 0.001)
        self.assertAlmostEqual(omega, expected_omega, places=12)
        self.assertAlmostEqual(theta, 1.0 + expected_omega * 0.001, places=12)
        self.assertFalse(o_reset)
        self.assertFalse(t_reset)

    def test_angle_is_not_wrapped(self):
        theta, *_ = pf.integrate_shaft(theta=100.0, omega=50.0, torque=0.0, inertia=0.09, dt=0.01)
        self.assertGreater(theta, 100.0)

    def test_nan_torque_resets_both(self):
        theta, omega, _, o_reset, t_reset = pf.integrate_shaft(
            theta=2.0, omega=10.0, torque=np.nan, inertia=0.09, dt=0.001
        )
        self.assertEqual(omega, 0.0)
        self.assertEqual(theta, 0.0)
        self.assertTrue(o_reset)
        self.assertTrue(t_reset)

    def test_non_finite_theta_reset_alone(self):
        theta, omega, _, o_reset, t_reset = pf.integrate_shaft(
            theta=np.inf, omega=10.0, torque=0.0, inertia=0.09, dt=0.001
        )
        self.assertEqual(theta, 0.0)
        self.assertTrue(t_reset)
        self.assertFalse(o_reset)
        self.assertAlmostEqual(omega, 10.0 * (1.0 - c.DAMPING_RATE * 0.001), places=12)


class TestHelpers(unittest.TestCase):

    def test_rad_s_to_rpm(self):
        self.assertAlmostEqual(pf.rad_s_to_rpm(2.0 * np.pi), 60.0, places=12)

    def test_geometry_errors(self):
        self.assertEqual(pf.geometry_errors(R, L, c.STROKE), [])
        self.assertEqual(len(pf.geometry_errors(0.1, 0.1, 0.2)), 1)
        self.assertEqual(len(pf.geometry_errors(R, L, 0.1)), 1)
        self.assertEqual(len(pf.geometry_errors(0.2, 0.1, 0.1)), 2)


if __name__ == "__main__":
    unittest.main()
