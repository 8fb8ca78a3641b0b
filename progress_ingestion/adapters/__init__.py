from progress_ingestion.adapters.json_adapter import ProjectSnapshot, load_snapshot

__all__ = ["ProjectSnapshot", "load_snapshot"]
