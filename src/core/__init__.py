"""Core: configuración, dominio, contratos y servicios del diff de schemas."""
