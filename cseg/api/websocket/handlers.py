import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from cseg.api.websocket.manager import manager
from cseg.core.security import generate_player_id
from cseg.game_engine.rounds import round_engine


async def handle_message(message: Any) -> dict[str, Any] | None:
    """Handle an incoming observer message. Game actions go through REST."""
    if not isinstance(message, dict):
        return {"type": "ERROR", "message": "Message must be an object"}

    msg_type = message.get("type")

    if msg_type == "PING":
        return {"type": "PONG"}

    if msg_type == "GET_STATE":
        return {"type": "STATE_UPDATE", "state": round_engine.get_client_state()}

    return {"type": "ERROR", "message": f"Unknown message type: {msg_type}"}


async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for live state updates."""
    client_id = generate_player_id()
    await manager.connect(websocket, client_id)

    try:
        await websocket.send_json({
            "type": "CONNECTED",
            "clientId": client_id,
            "state": round_engine.get_client_state(),
        })

        while True:
            try:
                data = await websocket.receive_text()
                message = json.loads(data)

                response = await handle_message(message)
                if response:
                    await websocket.send_json(response)

            except json.JSONDecodeError:
                await websocket.send_json({"type": "ERROR", "message": "Invalid JSON"})

    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(client_id)
