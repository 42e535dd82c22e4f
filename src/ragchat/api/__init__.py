from .routes import get_ingestion_pipeline, get_query_pipeline, router

__all__ = ["get_ingestion_pipeline", "get_query_pipeline", "router"]
