"""
python_buildpack - build pipeline that turns a Python source tree into a
relocatable virtualenv slug, reusing the previous build's cache.

Entry points: ``python_buildpack.runner.run_compile`` and the
``python-buildpack`` CLI (``compile`` / ``detect``).
"""

__version__ = "1.0.0"
PACKAGE_NAME = "python_buildpack"
PIPELINE_VERSION = "v1"
SCHEMA_VERSION = "1.0"
