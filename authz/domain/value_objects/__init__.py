"""Domain value objects."""

from authz.domain.value_objects.permission_provenance import PermissionProvenance
from authz.domain.value_objects.principal_ref import FullProfile, IdOnly, PrincipalRef
from authz.domain.value_objects.temporary_permission import TemporaryPermission

__all__ = [
    "FullProfile",
    "IdOnly",
    "PermissionProvenance",
    "PrincipalRef",
    "TemporaryPermission",
]
