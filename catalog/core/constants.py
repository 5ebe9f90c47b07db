"""Constantes partagées pour éviter les valeurs magiques dans le code.

Ce module regroupe les valeurs par défaut de pagination et les codes HTTP utilisés par la couche
REST du catalogue.
"""

# Pagination
DEFAULT_PAGE_NUMBER = 0
DEFAULT_PAGE_SIZE = 5
MAX_PAGE_SIZE = 100
UNPAGED_SIZE = 0  # taille sentinelle: requête non paginée (comptage interne)

# Codes de statut HTTP courants
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_NOT_MODIFIED = 304
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_PRECONDITION_FAILED = 412
HTTP_UNPROCESSABLE_ENTITY = 422
HTTP_PRECONDITION_REQUIRED = 428
HTTP_INTERNAL_SERVER_ERROR = 500
