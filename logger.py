# logger.py
#
# MIT License
#
# Copyright (c) 2025 Chris Cullin

import csv
import time

LOGFILE = "engine_log.csv"


class Logger:
    def __init__(self, telemetry, path=LOGFILE):
        self.start_time = time.time()
        self.path = path
        self.csv_file = open(path, "w", newline="")
        self.writer = csv.writer(self.csv_file)

        self.keys = list(telemetry.keys())
        self.writer.writerow(["time_s", *self.keys])

    # ---------------------------------------------------------------------------
    def log(self, telemetry):
        t = time.time() - self.start_time

        row_values = [t, *(telemetry[k] for k in self.keys)]

        # floats to 6 significant figures, keeps small dt and large pressures readable
        final_row = [
            "{:.6g}".format(v) if isinstance(v, float) else str(v) for v in row_values
        ]
        self.writer.writerow(final_row)
        self.csv_file.flush()

    def close(self):
        self.csv_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
