# Tools package init
"""
NotesHub Operations Tools
=========================

    - tunnel_config.py:  .env.production / firebase.json upserts
    - tunnel.py:         ngrok and localtunnel providers + supervisor
    - keepalive.py:      periodic GET /test pinger
    - cli.py:            `noteshub` Typer application
"""
