"""
Burned area statistic charts.

Author: Diego Bengochea
"""

from pathlib import Path
from typing import Dict, Tuple, Union

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


def plot_area_over_time(areas: Dict[str, int], output_file: Union[str, Path]) -> Path:
    """Column chart of burned hectares per acquisition."""
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    
    fig, ax = plt.subplots(figsize=(10, 5))
    ax.bar(list(areas.keys()), list(areas.values()), color='firebrick')
    ax.set_title('Wildfire area evolution')
    ax.set_xlabel('Time of acquisition')
    ax.set_ylabel('Area in ha')
    ax.tick_params(axis='x', labelrotation=45)
    
    plt.tight_layout()
    fig.savefig(output_file, dpi=300, bbox_inches='tight')
    plt.close(fig)
    return output_file


def plot_landcover_breakdown(breakdown: Dict[str, Tuple[float, float]], output_file: Union[str, Path]) -> Path:
    """Absolute and relative burned area per land-cover class, side by side."""
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    
    names = list(breakdown.keys())
    hectares = [values[0] for values in breakdown.values()]
    shares = [values[1] for values in breakdown.values()]
    
    fig, (ax_abs, ax_rel) = plt.subplots(1, 2, figsize=(14, 6))
    
    ax_abs.bar(names, hectares, color='darkorange')
    ax_abs.set_title('Total burned areas by land cover types')
    ax_abs.set_ylabel('Absolute burned areas (hectares)')
    
    ax_rel.bar(names, shares, color='steelblue')
    ax_rel.set_title('Share of land cover types on total burned area')
    ax_rel.set_ylabel('Share of total burned area (%)')
    
    for ax in (ax_abs, ax_rel):
        ax.tick_params(axis='x', labelrotation=75, labelsize=8)
    
    plt.tight_layout()
    fig.savefig(output_file, dpi=300, bbox_inches='tight')
    plt.close(fig)
    return output_file
