"""Core utilities: error hierarchy and exit codes."""

from cnamodel.core.errors import (
    CnaModelError,
    ExitCode,
    KeyCollisionExhaustion,
    MissingPropertyError,
    ModelLoadError,
    ReferentialIntegrityError,
    TemplateAssemblyError,
    TypeMismatchError,
    main_with_error_handling,
)

__all__ = [
    "CnaModelError",
    "ExitCode",
    "KeyCollisionExhaustion",
    "MissingPropertyError",
    "ModelLoadError",
    "ReferentialIntegrityError",
    "TemplateAssemblyError",
    "TypeMismatchError",
    "main_with_error_handling",
]
