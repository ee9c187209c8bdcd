[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fiveparks"
version = "2.0.0"
description = "A wavetable bass synthesizer engine with voices, modulation matrix, effects and analysis"
requires-python = ">=3.10"
keywords = ["synthesizer", "wavetable", "bass", "audio", "dsp", "midi"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Sound Synthesis",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["fiveparks"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
