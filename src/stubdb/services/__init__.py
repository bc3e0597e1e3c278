"""Build and query services for stubdb."""

from stubdb.services.build_service import BuildResult, BuildService, build_database
from stubdb.services.query_service import MemberLookup, SignatureDatabase

__all__ = [
    "BuildResult",
    "BuildService",
    "MemberLookup",
    "SignatureDatabase",
    "build_database",
]
