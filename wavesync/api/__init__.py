"""
HTTP/WebSocket control surface for a headless player.
"""
