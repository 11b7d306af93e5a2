[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blobtrack"
version = "0.1.0"
description = "Foreground blob detection, description and trajectory-aware blob tracking for video frames"
requires-python = ">=3.10"
keywords = ["computer vision", "blob tracking", "blob detection", "optical flow", "lucas-kanade", "tracking"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Recognition",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["blobtrack"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
