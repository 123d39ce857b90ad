"""Define project metadata
"""

__title__ = "hashserve"
__summary__ = "A content-addressed file storage service."
__url__ = "https://github.com/hashserve/hashserve"

__version__ = "0.2.0"

__install_requires__ = [
    "fs>=2.4.16",
    "setuptools<81",
    "fastapi>=0.100",
    "starlette",
    "python-multipart>=0.0.6",
    "uvicorn>=0.23",
    "requests>=2.28",
    "python-dotenv>=1.0",
]
__tests_require__ = ["pytest", "httpx", "tox"]

__author__ = "hashserve contributors"
__email__ = "hashserve@example.com"

__license__ = "MIT License"
