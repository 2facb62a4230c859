"""
HTTP API ContraVault на FastAPI
"""
