# Request/response DTOs for the HTTP adapter
