"""PyRock: remote control of a headless browser over WebSocket."""
