# main.py
#
# MIT License
#
# Copyright (c) 2025 Chris Cullin

import argparse
import time

import constants as c
from engine_model import EngineModel
from driver_input import DriverInput, MODES
from logger import Logger, LOGFILE


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Single-cylinder crank/piston simulator")
    parser.add_argument("--mode", choices=MODES, default="keyboard")
    parser.add_argument("--debug", action="store_true", default=False,
                        help="no dashboard and no CSV log")
    parser.add_argument("--ticks", type=int, default=5000,
                        help="tick count for scripted (headless) modes")
    parser.add_argument("--dt", type=float, default=c.DT_DEFAULT,
                        help="fixed time step for scripted modes, s")
    parser.add_argument("--max-substep", type=float, default=None,
                        help="split each tick into sub-steps no longer than this, s")
    parser.add_argument("--log-every", type=int, default=10)
    parser.add_argument("--log-file", default=LOGFILE)
    return parser.parse_args(argv)


class SimulationManager:
    def __init__(self, driver, engine, logger=None, dashboard_manager=None,
                 max_substep=None, log_every=1):
        self.driver = driver
        self.engine = engine
        self.logger = logger
        self.dashboard_manager = dashboard_manager
        self.max_substep = max_substep
        self.log_every = max(1, log_every)
        self.stop_simulation = False

    def run_one_tick(self, dt):
        # 1. driver inputs from the current state
        controls = self.driver.get_controls(self.engine.state)

        # 2. physics
        report = self.engine.step(controls, dt, max_substep=self.max_substep)
        telemetry = self.engine.get_telemetry()

        # 3. outputs
        if self.logger and self.engine.tick_count % self.log_every == 0:
            self.logger.log(telemetry)
        if self.dashboard_manager:
            self.dashboard_manager.update(self.engine.state, telemetry)
            self.dashboard_manager.draw()
            self.stop_simulation = self.dashboard_manager.stopped

        return telemetry, report

    def run_fixed(self, ticks, dt):
        telemetry = self.engine.get_telemetry()
        for _ in range(ticks):
            if self.stop_simulation:
                break
            telemetry, _ = self.run_one_tick(dt)
        return telemetry

    def run_realtime(self):
        """Variable time step: dt is the wall-clock time since the previous tick."""
        telemetry = self.engine.get_telemetry()
        last = time.perf_counter()
        while not self.stop_simulation:
            now = time.perf_counter()
            dt = now - last
            last = now
            telemetry, _ = self.run_one_tick(dt)
        return telemetry


def main(argv=None):
    args = parse_args(argv)

    driver = DriverInput(mode=args.mode)
    engine = EngineModel()

    for problem in engine.geometry_errors():
        print(f"WARNING geometry: {problem}")

    logger = None
    dashboard_manager = None
    if not args.debug:
        from dashboard_manager import DashboardManager

        logger = Logger(engine.get_telemetry(), path=args.log_file)
        dashboard_manager = DashboardManager(driver=driver)

    system = SimulationManager(driver, engine, logger, dashboard_manager,
                               max_substep=args.max_substep, log_every=args.log_every)

    telemetry = engine.get_telemetry()
    try:
        if args.mode == "keyboard":
            if dashboard_manager is None:
                print("Keyboard mode needs the dashboard; drop --debug.")
            else:
                telemetry = system.run_realtime()
        else:
            telemetry = system.run_fixed(args.ticks, args.dt)

    except KeyboardInterrupt:
        print("\nSimulation stopped by user")

    finally:
        if logger:
            logger.close()
        if dashboard_manager:
            dashboard_manager.close()

    print(f"Ticks: {engine.tick_count}  sim time: {engine.elapsed_time:.4f} s  "
          f"RPM: {telemetry['rpm']:.1f}  P_cyl: {telemetry['P_cyl']:.1f} Pa  "
          f"NaN resets: {engine.nan_resets}")
    return engine


if __name__ == "__main__":
    main()
