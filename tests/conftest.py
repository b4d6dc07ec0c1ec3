"""Shared fixtures for tests."""

import pytest

from homescreen_optimizer.candidates import LocatedTextCandidate
from homescreen_optimizer.schema import GripMode, Handedness, Profile, ProfileContext

# Smallest valid 1x1 PNG.
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06"
    b"\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01"
    b"\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


def loc(text, confidence, x, y, width=None, height=None):
    """Shorthand for a located candidate (y measured from the bottom)."""
    return LocatedTextCandidate(
        text=text,
        confidence=confidence,
        center_x=x,
        center_y=y,
        box_width=width,
        box_height=height,
    )


@pytest.fixture
def right_hand_profile():
    return Profile(
        name="Workday",
        context=ProfileContext.WORKDAY,
        handedness=Handedness.RIGHT,
        grip_mode=GripMode.ONE_HAND,
    )


@pytest.fixture
def png_file(tmp_path):
    path = tmp_path / "home_page.png"
    path.write_bytes(PNG_BYTES)
    return path


@pytest.fixture
def home_screen_candidates():
    """A realistic page: calendar widget on top, apps below, dock at the bottom."""
    return [
        loc("SUNDAY", 0.96, 0.20, 0.83, 0.16, 0.05),
        loc("No Events Today", 0.97, 0.24, 0.78, 0.30, 0.04),
        loc("Maps", 0.93, 0.62, 0.75, 0.10, 0.03),
        loc("Weather", 0.91, 0.88, 0.75, 0.10, 0.03),
        loc("Photos", 0.92, 0.12, 0.52, 0.10, 0.03),
        loc("Camera", 0.95, 0.37, 0.52, 0.10, 0.03),
        loc("Settings", 0.90, 0.62, 0.30, 0.11, 0.03),
        loc("Phone", 0.94, 0.12, 0.05, 0.09, 0.03),
        loc("Messages", 0.88, 0.68, 0.05, 0.14, 0.03),
    ]
