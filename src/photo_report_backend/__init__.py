"""
Photo Report Backend - image batch to PDF report service

This package turns a batch of images into one downloadable PDF report and
keeps the storage bucket clean afterward. It provides:

- Image ingestion from uploads, remote URLs or our own bucket
- Image normalization (bounded size, fixed JPEG quality)
- Hybrid rendering: a browser-rendered cover page plus content pages built
  directly with PyMuPDF, two images per page
- Pluggable storage (S3-compatible, Supabase Storage, local filesystem)
- Best-effort cleanup of staged sources and emergency bucket wipes

Key Components:
    - main: FastAPI application and HTTP endpoint definitions
    - job_manager: Source staging, pipeline execution and deferred cleanup
    - pipeline: Resolve -> normalize -> cover -> assemble -> upload
    - storage / s3_service / supabase_service: Storage backends
    - factory: One-time backend selection from credentials
    - cleanup: Source cleanup, artifact cleanup and bucket wipes
    - configuration: Packaged defaults and environment settings

Usage:
    Run the API server with:
        uvicorn photo_report_backend.main:app --reload --host 0.0.0.0 --port 8000
"""
