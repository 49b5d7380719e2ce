from promptsync.services.sync_service import ArtifactSyncService, parse_import_id

__all__ = ["ArtifactSyncService", "parse_import_id"]
