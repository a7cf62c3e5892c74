from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from dataclasses import asdict
from typing import Dict, List
from roundcaddy.middleware.auth import decode_token, get_current_user_id
from roundcaddy.schemas.watch import RangeModeMessageSchema, WatchMessageResponse, WatchSessionSummarySchema
from roundcaddy.services.capture_codec import watch_metrics_to_schema
from roundcaddy.services.watch_sync import InvalidWatchPayloadError, RangeModeMessage, watch_sync_registry
import structlog

logger = structlog.get_logger()
router = APIRouter(tags=["watch"])


def handle_watch_message(user_id: str, message: RangeModeMessageSchema) -> WatchMessageResponse:
    """Apply one Watch message to the user's sync state"""
    sync = watch_sync_registry.get(user_id)
    result = sync.handle(RangeModeMessage(
        action=message.action,
        timestamp=message.timestamp,
        payload=message.payload,
    ))

    reply = None
    if result.reply is not None:
        reply = RangeModeMessageSchema(
            action=result.reply.action,
            timestamp=result.reply.timestamp,
            payload=result.reply.payload,
        )

    return WatchMessageResponse(
        action=result.action,
        samples_received=result.samples_received,
        buffered_samples=len(sync.motion_buffer),
        clock_offset=sync.clock_offset,
        session_active=sync.is_session_active,
        swing_count=sync.swing_count,
        reply=reply,
        metrics=watch_metrics_to_schema(result.metrics) if result.metrics else None,
        summary=WatchSessionSummarySchema(**asdict(result.summary)) if result.summary else None,
    )


@router.post("/watch/messages", response_model=WatchMessageResponse)
async def post_watch_message(
    message: RangeModeMessageSchema,
    current_user_id: str = Depends(get_current_user_id)
):
    """
    Deliver a Range Mode message from the Watch.

    Unknown actions and payloads that do not parse are rejected with a 422.
    """
    try:
        return handle_watch_message(current_user_id, message)
    except InvalidWatchPayloadError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(
            "Failed to handle Watch message",
            error=str(e),
            action=message.action.value,
            user_id=current_user_id
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to handle Watch message: {str(e)}"
        )


class WatchConnectionManager:
    """Tracks open Watch sockets per user"""

    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, user_id: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.setdefault(user_id, []).append(websocket)
        logger.info("Watch socket connected", user_id=user_id, connections=len(self.active_connections[user_id]))

    def disconnect(self, user_id: str, websocket: WebSocket):
        connections = self.active_connections.get(user_id, [])
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(user_id, None)
        logger.info("Watch socket disconnected", user_id=user_id)


manager = WatchConnectionManager()


async def get_websocket_user_id(token: str = Query(...)) -> str:
    return decode_token(token)["user_id"]


@router.websocket("/ws/watch")
async def watch_websocket(websocket: WebSocket, user_id: str = Depends(get_websocket_user_id)):
    """
    Stream Range Mode messages from the Watch.

    Each client message is a RangeModeMessage; the server answers every
    message with a WatchMessageResponse, or {"error": ...} if it is invalid.
    """
    await manager.connect(user_id, websocket)
    try:
        while True:
            data = await websocket.receive_json()
            try:
                message = RangeModeMessageSchema.model_validate(data)
                response = handle_watch_message(user_id, message)
            except (ValidationError, InvalidWatchPayloadError) as e:
                await websocket.send_json({"error": "Invalid message", "detail": str(e)})
                continue
            except Exception as e:
                logger.error("Failed to handle Watch message", error=str(e), user_id=user_id)
                await websocket.send_json({"error": "Failed to handle Watch message", "detail": str(e)})
                continue

            await websocket.send_json(response.model_dump(mode="json"))
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(user_id, websocket)
