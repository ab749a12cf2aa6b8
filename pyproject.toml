[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "toytensor"
version = "0.1.0"
description = "A small strided tensor library with reverse-mode automatic differentiation and an SGD optimizer"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["tensor", "autograd", "automatic differentiation", "broadcasting", "sgd"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["toytensor"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
