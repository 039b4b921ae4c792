"""
pytest configuration file for texture calibration toolkit
"""
import pytest
import sys
import numpy as np
import cv2
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from texcalib.calibration_patterns import StandardChessboard
from texcalib.format_bridge import matrix_to_buffer
from texcalib.texture import Texture2D, TextureFormat
from texcalib.utils import render_pattern_view


IMAGE_SIZE = (640, 480)


def board_pose(pattern, rvec, distance=0.6):
    """Pose placing the board center on the optical axis at ``distance``."""
    rvec = np.asarray(rvec, dtype=np.float64)
    rotation, _ = cv2.Rodrigues(rvec)
    center = np.array([(pattern.width - 1) * pattern.square_size / 2,
                       (pattern.height - 1) * pattern.square_size / 2, 0.0])
    tvec = np.array([0.0, 0.0, distance]) - rotation @ center
    return rvec, tvec


def gray_to_engine_frame(gray):
    """Turn a top-left-origin grayscale image into an engine-native RGBA PixelBuffer."""
    return matrix_to_buffer(cv2.cvtColor(gray, cv2.COLOR_GRAY2RGBA))


@pytest.fixture
def temp_output_dir(tmp_path):
    """Create a temporary directory for test outputs."""
    output_dir = tmp_path / "test_output"
    output_dir.mkdir()
    return output_dir


@pytest.fixture
def sample_chessboard_config():
    """Standard chessboard configuration for testing."""
    return {
        "pattern_id": "standard_chessboard",
        "name": "Standard Chessboard",
        "description": "Traditional black and white checkerboard pattern",
        "is_planar": True,
        "parameters": {
            "width": 9,
            "height": 6,
            "square_size": 0.026
        }
    }


@pytest.fixture
def chessboard():
    """The 9x6 interior-corner board with 26 mm squares."""
    return StandardChessboard(width=9, height=6, square_size=0.026)


@pytest.fixture
def mock_camera_matrix():
    """Sample camera matrix for a 640x480 camera."""
    return np.array([
        [800.0, 0.0, 320.0],
        [0.0, 800.0, 240.0],
        [0.0, 0.0, 1.0]
    ], dtype=np.float64)


@pytest.fixture
def synthetic_view(chessboard, mock_camera_matrix):
    """640x480 grayscale view of the 9x6 board at a known tilted pose."""
    rvec, tvec = board_pose(chessboard, [0.2, -0.25, 0.05])
    image = render_pattern_view(chessboard, mock_camera_matrix, rvec, tvec, IMAGE_SIZE)
    return {
        'image': image,
        'rvec': rvec,
        'tvec': tvec,
        'camera_matrix': mock_camera_matrix,
        'pattern': chessboard,
    }


@pytest.fixture
def engine_frame():
    """Factory turning grayscale images into engine-native RGBA PixelBuffers."""
    return gray_to_engine_frame


@pytest.fixture
def pose_for():
    """Factory for board poses centered on the optical axis."""
    return board_pose


@pytest.fixture
def blank_view():
    """640x480 grayscale frame without any pattern."""
    return np.full((IMAGE_SIZE[1], IMAGE_SIZE[0]), 128, dtype=np.uint8)


@pytest.fixture
def gradient_texture():
    """Small RGBA32 texture whose bytes are all distinct along each row."""
    width, height = 5, 3
    texture = Texture2D(width, height, TextureFormat.RGBA32)
    texture.load_raw_texture_data(np.arange(width * height * 4, dtype=np.uint8))
    return texture


# Configure test collection
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers and organize tests."""
    for item in items:
        if "slow" in item.nodeid:
            item.add_marker(pytest.mark.slow)

        # Mark tests that require OpenCV
        if any(module in str(item.fspath) for module in ["calibration", "pattern", "pipeline"]):
            item.add_marker(pytest.mark.opencv)


# Test markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "opencv: marks tests that require OpenCV"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "e2e: marks tests as end-to-end tests"
    )
