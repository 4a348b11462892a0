"""
Setup file.
"""

from setuptools import setup

KEYWORDS = "native jni build toolchain make compiler shared-library classifier"


if __name__ == "__main__":
    setup(
        maintainer="Zachary Vorhies",
        keywords=KEYWORDS,
        include_package_data=True)
