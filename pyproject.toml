[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ftpclient"
version = "0.1.0"
description = "An FTP client library (RFC 959) with MLSD/MLST listings, EPSV/PASV data connections and TLS"
requires-python = ">=3.11"
dependencies = []
keywords = ["ftp", "ftps", "rfc959", "rfc3659", "client", "file transfer"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: File Transfer Protocol (FTP)",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ftpclient"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
