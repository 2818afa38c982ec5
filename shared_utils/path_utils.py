"""
Path utilities for the SAR Burned Area Progression Pipeline.

This module provides consistent path handling, file discovery, and directory
management across all pipeline components.

Author: Diego Bengochea
"""

from pathlib import Path
from typing import List, Union, Optional

from .logging_utils import get_logger


def ensure_directory(path: Union[str, Path], parents: bool = True) -> Path:
    """
    Ensure directory exists, creating it if necessary.
    
    Args:
        path: Directory path to create
        parents: Whether to create parent directories
        
    Returns:
        Path: Created directory path
    """
    path = Path(path)
    path.mkdir(parents=parents, exist_ok=True)
    return path


def find_files(
    directory: Union[str, Path],
    pattern: str = "*",
    recursive: bool = True,
    file_types: Optional[List[str]] = None
) -> List[Path]:
    """
    Find files matching pattern in directory.
    
    Args:
        directory: Directory to search in
        pattern: Glob pattern to match
        recursive: Whether to search recursively
        file_types: List of file extensions to filter by (e.g., ['.tif', '.tiff'])
        
    Returns:
        List[Path]: Sorted list of matching file paths
        
    Examples:
        >>> scenes = find_files("data/raw/sentinel1", "*.tif")
    """
    directory = Path(directory)
    
    if not directory.exists():
        get_logger('paths').warning(f"Directory does not exist: {directory}")
        return []
    
    if recursive:
        files = list(directory.rglob(pattern))
    else:
        files = list(directory.glob(pattern))
    
    if file_types:
        file_types = [ext.lower() for ext in file_types]
        files = [f for f in files if f.suffix.lower() in file_types]
    
    files = [f for f in files if f.is_file()]
    
    return sorted(files)
