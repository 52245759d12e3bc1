[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "auxfx"
version = "0.1.0"
description = "Auxiliary-bus audio effects (delay, chorus, two reverbs) with a sound-RAM allocator and voice state model for a frame-based mixer"
requires-python = ">=3.10"
dependencies = []
keywords = ["audio", "effects", "reverb", "chorus", "delay", "dsp", "mixer"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Multimedia :: Sound/Audio",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["auxfx"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
