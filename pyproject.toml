[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtpmedia"
version = "0.1.0"
description = "RTP/RTCP packets, session statistics, SDP parsing and DTMF detection for VoIP media"
requires-python = ">=3.10"
dependencies = []
keywords = ["rtp", "rtcp", "sdp", "voip", "dtmf", "jitter", "media"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Internet Phone",
    "Topic :: Multimedia :: Sound/Audio",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rtpmedia"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
