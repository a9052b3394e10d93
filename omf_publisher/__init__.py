"""OMF Publisher - publicación de telemetría a un historian vía OMF.

Estructura:
- config.py    → PublisherSettings (env / propiedades del host)
- core/        → Pipeline de publicación (normalización, esquema, codificación, transporte)
- api/         → Endpoints de salud y estadísticas (FastAPI)
- cli.py       → Reproducción de lotes JSON-lines contra un receptor OMF
"""

__version__ = "0.1.0"
