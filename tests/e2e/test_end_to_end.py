"""
End-to-end tests for the texture calibration toolkit.

Tests complete user workflows: the command-line runner in its synthetic and
image-directory modes, and a full engine-texture calibration session.
"""
import pytest
import subprocess
import json
import sys
from pathlib import Path
import numpy as np
import cv2

# Add the project root to the path for importing modules
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import main
from texcalib import (
    CalibrationEstimator, CalibrationPipeline, CameraModel, CorrespondenceSet, PatternDetector,
    PipelineConfig, SurfaceFrameSource, Texture2D, TextureDisplaySink, TextureFormat, save_config
)
from texcalib.format_bridge import matrix_to_texture, texture_to_matrix
from texcalib.utils import render_pattern_view

PROJECT_ROOT = Path(__file__).parent.parent.parent


class TestCommandLine:
    """Test the main entry point as a user would run it."""

    @pytest.mark.e2e
    def test_synthetic_mode_writes_camera_model(self, temp_output_dir):
        output = temp_output_dir / "camera.json"

        exit_code = main.main(["--mode", "synthetic", "--max_frames", "6", "--calib_out", str(output)])

        assert exit_code == 0
        with open(output) as f:
            model = CameraModel.from_json(json.load(f))
        assert model.image_size == (640, 480)
        assert len(model.translations) == 6
        assert model.fx == pytest.approx(800.0, rel=0.05)
        assert len(model.distortion_coefficients) == 5

    @pytest.mark.e2e
    def test_images_mode(self, temp_output_dir, chessboard, mock_camera_matrix, pose_for):
        image_dir = temp_output_dir / "images"
        image_dir.mkdir()
        for i, rvec in enumerate([[0.25, 0.0, 0.0], [0.0, 0.3, 0.05], [-0.2, 0.2, -0.05]]):
            rvec, tvec = pose_for(chessboard, rvec)
            view = render_pattern_view(chessboard, mock_camera_matrix, rvec, tvec)
            cv2.imwrite(str(image_dir / f"{i}.png"), view)
        cv2.imwrite(str(image_dir / "3.png"), np.full((480, 640), 128, dtype=np.uint8))
        output = temp_output_dir / "camera.json"

        exit_code = main.main(["--mode", "images", "--image_dir", str(image_dir),
                               "--calib_out", str(output)])

        assert exit_code == 0
        with open(output) as f:
            data = json.load(f)
        assert len(data['extrinsics']['translation_vectors']) == 3

    @pytest.mark.e2e
    def test_config_file_and_overrides(self, temp_output_dir):
        config_path = temp_output_dir / "config.json"
        save_config(PipelineConfig(), str(config_path))

        args = main.build_parser().parse_args(["--config", str(config_path), "--xx", "7", "--yy", "5"])
        config = main.build_config(args)

        assert config.pattern.get_pattern_size() == (7, 5)
        assert config.pattern.square_size == pytest.approx(0.026)

    @pytest.mark.e2e
    def test_no_detection_fails(self, temp_output_dir):
        image_dir = temp_output_dir / "blank"
        image_dir.mkdir()
        cv2.imwrite(str(image_dir / "0.png"), np.full((480, 640), 128, dtype=np.uint8))

        assert main.main(["--mode", "images", "--image_dir", str(image_dir)]) == 1

    @pytest.mark.e2e
    def test_images_mode_requires_directory(self):
        assert main.main(["--mode", "images"]) == 1

    @pytest.mark.e2e
    @pytest.mark.slow
    def test_script_execution(self, temp_output_dir):
        output = temp_output_dir / "camera.json"

        completed = subprocess.run(
            [sys.executable, "main.py", "--mode", "synthetic", "--max_frames", "4",
             "--calib_out", str(output)],
            cwd=str(PROJECT_ROOT), capture_output=True, text=True, timeout=120
        )

        assert completed.returncode == 0, completed.stderr
        assert "Camera matrix:" in completed.stdout
        assert output.exists()


class TestSingleViewCalibration:
    """One rendered frame through detection and solving."""

    @pytest.mark.e2e
    def test_single_view_gives_plausible_intrinsics(self, synthetic_view):
        height, width = synthetic_view['image'].shape
        points = PatternDetector().detect(synthetic_view['image'], synthetic_view['pattern'])
        assert points is not None
        assert len(points) == 54

        correspondences = CorrespondenceSet()
        correspondences.add_detection(synthetic_view['pattern'], points)
        model = CalibrationEstimator().solve(correspondences, (width, height))

        assert model.fx > 0 and model.fy > 0
        assert abs(model.cx - width / 2) <= 0.1 * width
        assert abs(model.cy - height / 2) <= 0.1 * height
        assert len(model.distortion_coefficients) == 5


class TestEngineSession:
    """A calibration session driven entirely through engine textures."""

    @pytest.mark.e2e
    def test_camera_texture_to_display_texture(self, chessboard, mock_camera_matrix, pose_for):
        camera_texture = Texture2D(640, 480, TextureFormat.RGB24)
        display_texture = Texture2D(1, 1)
        pipeline = CalibrationPipeline(SurfaceFrameSource(camera_texture),
                                       TextureDisplaySink(display_texture))

        detections = 0
        with pipeline:
            for rvec in [[0.25, 0.0, 0.0], [0.0, 0.3, 0.05], [-0.2, 0.2, -0.05], [0.15, -0.25, 0.1]]:
                rvec, tvec = pose_for(chessboard, rvec)
                view = render_pattern_view(chessboard, mock_camera_matrix, rvec, tvec)
                matrix_to_texture(cv2.cvtColor(view, cv2.COLOR_GRAY2RGB), camera_texture)

                result = pipeline.tick()
                detections += int(result.detected)
                # Nothing new rendered into the camera texture
                assert not pipeline.tick().frame_processed

        assert detections == 4
        assert display_texture.width == 640 and display_texture.height == 480
        assert display_texture.format == TextureFormat.RGB24

        shown = texture_to_matrix(display_texture)
        assert shown[0, 0].tolist() == [255, 255, 255]

        model = pipeline.camera_model
        assert model.fx == pytest.approx(800.0, rel=0.05)
        assert model.cx == pytest.approx(320.0, rel=0.1)
        assert model.cy == pytest.approx(240.0, rel=0.1)
        assert "Camera matrix:" in model.format_report()


class TestExampleScripts:
    """Test that the example scripts run."""

    @pytest.mark.e2e
    @pytest.mark.slow
    def test_generate_images_then_calibrate(self, temp_output_dir):
        completed = subprocess.run(
            [sys.executable, "examples/generate_chessboard_images.py",
             "--output_dir", str(temp_output_dir), "--count", "4"],
            cwd=str(PROJECT_ROOT), capture_output=True, text=True, timeout=120
        )
        assert completed.returncode == 0, completed.stderr
        assert (temp_output_dir / "board.png").exists()
        assert len(list((temp_output_dir / "views").glob("*.png"))) == 4

        output = temp_output_dir / "camera.json"
        exit_code = main.main(["--mode", "images", "--image_dir", str(temp_output_dir / "views"),
                               "--calib_out", str(output)])
        assert exit_code == 0

    @pytest.mark.e2e
    @pytest.mark.slow
    def test_usage_example(self):
        completed = subprocess.run(
            [sys.executable, "examples/usage_example.py"],
            cwd=str(PROJECT_ROOT), capture_output=True, text=True, timeout=120
        )
        assert completed.returncode == 0, completed.stderr
        assert "Calibration successful!" in completed.stdout
