"""
Calibration Pattern System
==========================

Calibration targets the pipeline can detect, and their JSON configuration.

Usage:
    from texcalib.calibration_patterns import load_pattern_from_json

    pattern = load_pattern_from_json({
        "pattern_id": "standard_chessboard",
        "parameters": {"width": 9, "height": 6, "square_size": 0.026}
    })
"""

import json
from typing import Any, Dict

from .base import CalibrationPattern, default_subpix_criteria
from .standard_chessboard import StandardChessboard, DEFAULT_DETECTION_FLAGS


PATTERN_TYPES = {
    StandardChessboard.PATTERN_INFO['id']: StandardChessboard,
}


def load_pattern_from_json(json_data: Dict[str, Any]) -> CalibrationPattern:
    """Create a pattern from its JSON description."""
    pattern_id = json_data.get('pattern_id', '')

    # Legacy short id
    if pattern_id == 'standard':
        pattern_id = 'standard_chessboard'

    if pattern_id not in PATTERN_TYPES:
        raise ValueError(f"Unknown pattern type: {pattern_id}. "
                         f"Available types: {list(PATTERN_TYPES.keys())}")
    return PATTERN_TYPES[pattern_id].from_json(json_data)


def save_pattern_to_json(pattern: CalibrationPattern, filepath: str) -> None:
    """Write a pattern's JSON description to ``filepath``."""
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(pattern.to_json(), f, indent=2)


__all__ = [
    'CalibrationPattern',
    'StandardChessboard',
    'DEFAULT_DETECTION_FLAGS',
    'PATTERN_TYPES',
    'default_subpix_criteria',
    'load_pattern_from_json',
    'save_pattern_to_json',
]
