"""Shared fixtures for report engine tests."""

import io
import os
from datetime import datetime

import pytest
from PIL import Image as PILImage

from report_engine.config_manager import default_report_settings
from report_engine.exporters import ReportExporter

FIXED_NOW = datetime(2024, 5, 1, 9, 30, 0)


def make_image_bytes(width=120, height=90, color=(200, 30, 30), fmt="JPEG", mode="RGB"):
    """Encode a solid-colour test image."""
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    image = PILImage.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_noise_bytes(width=400, height=400):
    """Encode random pixels, which JPEG cannot compress well."""
    image = PILImage.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def scratch_dir(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "reports"


@pytest.fixture
def settings(scratch_dir, output_dir):
    """Default report settings pointed at per-test directories."""
    report_settings = default_report_settings()
    report_settings["temp_files"]["directory"] = str(scratch_dir)
    report_settings["output"]["directory"] = str(output_dir)
    return report_settings


@pytest.fixture
def exporter(settings):
    return ReportExporter(settings, clock=lambda: FIXED_NOW)


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes()


@pytest.fixture
def large_photo_bytes():
    """A 3000x4000 camera-sized photo."""
    return make_image_bytes(3000, 4000, color=(40, 120, 200))


@pytest.fixture
def image_factory():
    return make_image_bytes


@pytest.fixture
def noise_factory():
    return make_noise_bytes
