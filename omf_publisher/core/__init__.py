"""Core module - Pipeline de publicación OMF.

Estructura:
- domain/         → Valores tipados, nombres, modelo de esquema y errores
- normalization/  → Registros → SchemaSnapshot
- schema/         → Registro del esquema conocido por el receptor
- encoding/       → Mensajes Type / Container / Data en JSON
- transport/      → Cliente HTTPS con gzip y clasificación de status
- delivery/       → Cola in-flight y scheduler de reintentos
- monitoring/     → Estadísticas y salud
- publisher.py    → Orquestador
"""
