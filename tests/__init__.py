"""
Tests package for Texture Calibration Toolkit

This package contains all test modules for the calibration toolkit,
organized by test type:

- unit/: Unit tests for individual modules and classes
- integration/: Pipeline tests across frame source, detection and display
- e2e/: Command-line runner, example scripts and full engine sessions
"""
