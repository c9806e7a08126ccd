[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "deformgt"
version = "0.1.0"
description = "Ground-truth evaluation tools for deformable monocular reconstructions: stereo and depth-based 3D ground truth, robust scale estimation, 3D and normal-angle errors"
requires-python = ">=3.10"
keywords = ["slam", "ground-truth", "stereo", "depth", "deformable", "evaluation", "computer-vision"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
    "numpy",
]

[tool.hatch.build.targets.wheel]
packages = ["deformgt"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
