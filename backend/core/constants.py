"""Constantes partagées pour éviter les valeurs magiques dans le code.

Ce module regroupe les codes HTTP utilisés par l'API ainsi que les valeurs par
défaut du retry/backoff.
"""

# Codes de statut HTTP
HTTP_STATUS_OK = 200
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_UNPROCESSABLE = 422
HTTP_STATUS_NO_CONTENT = 204

# Retry/backoff (millisecondes)
MAX_RETRY_ATTEMPTS = 3
RETRY_BASE_DELAY_MS = 1000
RETRY_MAX_DELAY_MS = 10000
LLM_REQUEST_TIMEOUT_S = 30.0

# Valeur laissée par les fichiers .env d'exemple
PLACEHOLDER_API_KEY = "your_gemini_api_key"

# Marqueurs d'erreur "réessayable" renvoyés par l'API Gemini
RETRYABLE_ERROR_MARKERS = ("overloaded", "try again")

# Taille des listes injectées dans les prompts
RECENT_RECORDS_LIMIT = 20
MAX_KEY_NODES = 5
