[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "campaniagp"
version = "0.1.0"
description = "A small networked Green Pass system: vaccination centre, registry server, verification server and clients"
requires-python = ">=3.10"
dependencies = []
keywords = ["green pass", "sockets", "tcp", "client-server", "vaccination"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Natural Language :: Italian",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
campaniagp-vaccination-center = "campaniagp.vaccination_center:main"
campaniagp-user = "campaniagp.user:main"
campaniagp-server-v = "campaniagp.server_v:main"
campaniagp-server-g = "campaniagp.server_g:main"
campaniagp-client-s = "campaniagp.client_s:main"
campaniagp-client-t = "campaniagp.client_t:main"

[tool.hatch.build.targets.wheel]
packages = ["campaniagp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
