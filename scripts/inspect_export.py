#!/usr/bin/env python3
"""Summarize an exported SensorData_*.csv file.

Usage: python3 scripts/inspect_export.py [FILE] [--dir exports]
Without FILE the newest SensorData_*.csv in --dir is used. Prints per-satellite
min/max for every column and the raw/normalized start times.
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from satellite_bridge.channels import NUM_SATELLITES, SensorType, column_label, satellite_columns
from satellite_bridge.codec import FILE_PREFIX, import_csv, load_export
from satellite_bridge.errors import ImportParseError
from satellite_bridge.start_times import registry_index

parser = argparse.ArgumentParser()
parser.add_argument('file', nargs='?', help='Exported CSV file')
parser.add_argument('--dir', default='exports', help='Directory searched when no file is given')
args = parser.parse_args()

if args.file:
    target = Path(args.file)
else:
    files = sorted(Path(args.dir).glob(f'{FILE_PREFIX}_*.csv'), key=lambda p: p.stat().st_mtime)
    if not files:
        print('No exports found in', args.dir)
        sys.exit(1)
    target = files[-1]

print('Inspecting', target)

try:
    imported = import_csv(load_export(str(target)))
except (ImportParseError, OSError) as e:
    print('Could not read export:', e)
    sys.exit(1)

for sat in range(1, NUM_SATELLITES + 1):
    print(f'\nSatellite {sat}')
    for col in satellite_columns(sat):
        values = [row[col] for row in imported.rows if row[col] is not None]
        if values:
            print(f'  {column_label(col):<10} n={len(values):3d} min={min(values):10.4f} max={max(values):10.4f}')
        else:
            print(f'  {column_label(col):<10} (no data)')
    for sensor_type in SensorType:
        index = registry_index(sat, sensor_type)
        print(f'  {sensor_type.title:<14} start raw={imported.raw[index]} normalized={imported.normalized[index]}')

print('\nDone.')
