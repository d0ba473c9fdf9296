"""Generate absolute-position sensor datasets for the fusion demo.

Creates a dataset with:
    - A static period (for initial-reading calibration) followed by a circle
    - Raw readings in the driver channel layout (y, x, z) with per-reading
      standard deviations
    - Sensor configuration (absolute frame, calibration flag, lever-arm)

Saves to: data/sim/absloc_<preset>/
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from ch8_sensor_fusion.absloc_gnss_ekf import (
    PRESETS,
    save_absloc_dataset,
    simulate_absloc_dataset,
)


def main():
    """Main entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="Generate absolute-position sensor datasets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # GNSS-like dataset with calibrated first reading
  python %(prog)s --preset gnss

  # Motion-capture-like dataset in a custom directory
  python %(prog)s --preset mocap --output data/sim/mocap_test

Available presets: """ + ", ".join(PRESETS.keys())
    )
    parser.add_argument(
        '--preset',
        type=str,
        default='gnss',
        choices=list(PRESETS.keys()),
        help='Preset configuration (default: gnss)'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output directory (default: data/sim/absloc_<preset>)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=42,
        help='Random seed (default: 42)'
    )

    args = parser.parse_args()

    output = args.output or f"data/sim/absloc_{args.preset}"

    print(f"\n{'='*70}")
    print(f"Generating absolute-position dataset: {args.preset}")
    print(f"{'='*70}")
    print(f"  {PRESETS[args.preset]['description']}")

    dataset = simulate_absloc_dataset(args.preset, seed=args.seed)
    output_path = save_absloc_dataset(dataset, output)

    print(f"\nOutput directory: {output_path.absolute()}")
    print(f"\nFiles created:")
    print(f"  - truth.npz    : Ground truth (t, p, q)")
    print(f"  - readings.npz : Raw readings (t, data, var) in (y, x, z) layout")
    print(f"  - config.json  : Dataset and sensor configuration")
    print(f"\nReadings: {len(dataset['readings']['t'])}")
    print(f"\n")


if __name__ == "__main__":
    main()
