"""
Ingestion of raw field-application documents into domain snapshots.

``mapping`` converts documents to ``progress_kernel.domain`` objects;
``adapters`` reads them from files.
"""
