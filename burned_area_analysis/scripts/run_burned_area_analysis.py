#!/usr/bin/env python3
"""
Burned area statistics script.

Command-line interface for burned area over time and land-cover breakdown
of a burned area progression stack.

Usage:
    python run_burned_area_analysis.py --config analysis.yaml

Author: Diego Bengochea
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from burned_area_analysis.core.analysis_pipeline import BurnedAreaAnalysisPipeline


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Burned area over time and land-cover breakdown statistics",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    
    parser.add_argument(
        '--config',
        type=str,
        help='Path to configuration file (default: component config.yaml)'
    )
    
    return parser.parse_args()


def main():
    """Main entry point for burned area analysis script."""
    args = parse_arguments()
    pipeline = BurnedAreaAnalysisPipeline(args.config)
    success = pipeline.run_full_pipeline()
    
    return success


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
