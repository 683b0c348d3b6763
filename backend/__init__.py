# backend/__init__.py
"""
Package marker + explicit export of the form engine so
`from backend import FormEngine` works for callers outside the package.
"""
from backend.form_engine import FormEngine  # noqa: F401
from backend.schema import FieldDescriptor, FieldType  # noqa: F401
