"""stubdb - signature database for PHP stub files."""

from stubdb.services.build_service import BuildResult, BuildService, build_database
from stubdb.services.query_service import MemberLookup, SignatureDatabase
from stubdb.types.resolution import CallContext

__version__ = "0.1.0"

__all__ = [
    "BuildResult",
    "BuildService",
    "CallContext",
    "MemberLookup",
    "SignatureDatabase",
    "build_database",
]
