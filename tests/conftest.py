"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from cascade.model import Classifier, Feature, Rect, Stage  # noqa: E402


LEGACY_XML = """<?xml version="1.0"?>
<!-- Legacy Haar cascade. A <stages> tag inside a comment must be ignored. -->
<opencv_storage>
<haarcascade_test type_id="opencv-haar-classifier">
  <size>24 24</size>
  <stages>
    <_>
      <!-- stage 0 -->
      <trees>
        <_>
          <!-- tree 0 -->
          <_>
            <!-- root node -->
            <feature>
              <rects>
                <_>6 4 12 9 -1.</_>
                <_>6 7 12 3 3.</_></rects>
              <tilted>0</tilted></feature>
            <threshold>-0.0315119996666908</threshold>
            <left_val>2.0875380039215088</left_val>
            <right_val>-2.2172100543975830</right_val></_></_>
      </trees>
      <stage_threshold>-5.0425500869750977</stage_threshold>
      <parent>-1</parent>
      <next>-1</next></_>
  </stages>
</haarcascade_test>
</opencv_storage>
"""

CURRENT_XML = """<?xml version="1.0"?>
<opencv_storage>
<cascade type_id="opencv-cascade-classifier"><stageType>BOOST</stageType>
  <featureType>HAAR</featureType>
  <height>24</height>
  <width>24</width>
  <stageParams>
    <maxWeakCount>2</maxWeakCount></stageParams>
  <featureParams>
    <maxCatCount>0</maxCatCount></featureParams>
  <stageNum>1</stageNum>
  <stages>
    <!-- stage 0 -->
    <_>
      <maxWeakCount>2</maxWeakCount>
      <stageThreshold>-5.0425500869750977e+00</stageThreshold>
      <weakClassifiers>
        <_>
          <internalNodes>
            0 -1 1 -3.1511999666690826e-02</internalNodes>
          <leafValues>
            2.0875380039215088e+00 -2.2172100543975830e+00</leafValues></_>
        <_>
          <internalNodes>
            0 -1 0 1.2396000325679779e-02</internalNodes>
          <leafValues>
            -1.8633940219879150e+00 1.3272049427032471e+00</leafValues></_></weakClassifiers></_></stages>
  <features>
    <_>
      <rects>
        <_>
          6 4 12 9 -1.</_>
        <_>
          6 7 12 3 3.</_></rects></_>
    <_>
      <rects>
        <_>
          6 4 12 7 -1.</_>
        <_>
          10 4 4 7 3.</_></rects></_></features></cascade>
</opencv_storage>
"""


@pytest.fixture
def legacy_xml():
    return LEGACY_XML


@pytest.fixture
def current_xml():
    return CURRENT_XML


@pytest.fixture
def accept_all_classifier():
    """A 24x24 cascade whose single stage passes every window."""
    feature = Feature(
        threshold=0.0,
        left_val=0.0,
        right_val=0.0,
        size=(24, 24),
        rects=(Rect(0, 0, 24, 24, 1.0),),
    )
    return Classifier(size_x=24, size_y=24, stages=(Stage(threshold=-1.0, features=(feature,)),))


@pytest.fixture
def block_classifier():
    """
    A 24x24 cascade that only passes windows whose top-left 4x4 cell (8x8 at
    scale 2) holds all of the bright pixels of the window.
    """
    feature = Feature(
        threshold=0.0,
        left_val=0.0,
        right_val=1.0,
        size=(24, 24),
        rects=(
            Rect(0, 0, 4, 4, 1.0),
            Rect(0, 0, 24, 24, -1.0),
        ),
    )
    return Classifier(size_x=24, size_y=24, stages=(Stage(threshold=0.5, features=(feature,)),))


@pytest.fixture
def block_image():
    """
    60x56 (width x height) black BGR image with a white 8x8 block covering
    x 9..16, y 5..12.

    With the block classifier, exactly one window passes at scale 2: the one
    at origin (8, 4).
    """
    image = np.zeros((56, 60, 3), dtype=np.uint8)
    image[5:13, 9:17] = 255
    return image


@pytest.fixture
def valid_config(tmp_path):
    """Return a valid configuration dictionary."""
    return {
        "detector": {
            "cascade": "",
            "min_neighbours": 2,
            "backend": "auto",
        },
        "log_path": str(tmp_path / "logs" / "test.log"),
        "log_level": "INFO",
    }


@pytest.fixture
def checkerboard_image():
    """64x64 black and white BGR checkerboard of 16x16 squares, white at the origin."""
    ys, xs = np.mgrid[0:64, 0:64]
    image = np.zeros((64, 64, 3), dtype=np.uint8)
    image[(xs // 16 + ys // 16) % 2 == 0] = 255
    return image


@pytest.fixture
def checkerboard_classifier():
    """
    A 24x24 cascade comparing the white share of the window's top-left 8x8
    cell (16x16 pixels at scale 2) with 16% of the white in the whole window.

    On the checkerboard only the window at the origin, scale 2, passes: its
    cell holds 226 white pixels against 0.16 * 1250 = 200. The best of the
    other windows reaches 178 against 0.16 * 1202 = 192.3.
    """
    feature = Feature(
        threshold=0.0,
        left_val=0.0,
        right_val=1.0,
        size=(24, 24),
        rects=(
            Rect(0, 0, 8, 8, 1.0),
            Rect(0, 0, 24, 24, -0.16),
        ),
    )
    return Classifier(size_x=24, size_y=24, stages=(Stage(threshold=0.5, features=(feature,)),))
