import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from callboard.delivery.web.dependencies import get_service
from callboard.errors import ChannelNotFoundError, TokenNotFoundError
from callboard.tokens.schemas import (
    Channel,
    ChannelTokenLink,
    ChannelWithTokens,
    FavoriteStatus,
    Token,
    TokenCreate,
    TokenUpdate,
    TokenWithChannels,
)
from callboard.tokens.service import TokenService

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _message(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse({"message": message, **extra}, status_code=status_code)


def _invalid(message: str, exc: ValidationError) -> JSONResponse:
    errors = [
        {"path": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return _message(400, message, errors=errors)


def _parse_id(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


def _parse_min_channels(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        return default


async def _json_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


# ═══════════════════════════════════════════════════════════════════════════
# Channels
# ═══════════════════════════════════════════════════════════════════════════

@router.get("/api/health")
async def health():
    return {"status": "ok"}


@router.get("/api/channels", response_model=list[Channel])
async def api_channels(service: TokenService = Depends(get_service)):
    try:
        return await service.list_channels()
    except Exception:
        logger.exception("Failed to fetch channels")
        return _message(500, "Failed to fetch channels")


@router.get("/api/channels/with-tokens", response_model=list[ChannelWithTokens])
async def api_channels_with_tokens(service: TokenService = Depends(get_service)):
    try:
        return await service.get_channels_with_tokens()
    except Exception:
        logger.exception("Failed to fetch channels with tokens")
        return _message(500, "Failed to fetch channels with tokens")


@router.get("/api/channels/{channel_id}/tokens", response_model=ChannelWithTokens)
async def api_channel_tokens(channel_id: str, service: TokenService = Depends(get_service)):
    parsed = _parse_id(channel_id)
    if parsed is None:
        return _message(400, "Invalid channel ID")
    try:
        return await service.get_channel_tokens(parsed)
    except ChannelNotFoundError:
        return _message(404, "Channel not found")
    except Exception:
        logger.exception("Failed to fetch tokens for channel %s", channel_id)
        return _message(500, "Failed to fetch channel tokens")


@router.post("/api/channels/{channel_id}/tokens/{token_id}", status_code=201,
             response_model=ChannelTokenLink)
async def api_add_token_to_channel(
    channel_id: str, token_id: str, service: TokenService = Depends(get_service)
):
    parsed_channel, parsed_token = _parse_id(channel_id), _parse_id(token_id)
    if parsed_channel is None or parsed_token is None:
        return _message(400, "Invalid channel or token ID")
    try:
        return await service.add_token_to_channel(parsed_channel, parsed_token)
    except ChannelNotFoundError:
        return _message(404, "Channel not found")
    except Exception:
        logger.exception("Failed to add token %s to channel %s", token_id, channel_id)
        return _message(500, "Failed to add token to channel")


# ═══════════════════════════════════════════════════════════════════════════
# Tokens (static paths first so they win over /api/tokens/{token_id})
# ═══════════════════════════════════════════════════════════════════════════

@router.get("/api/tokens", response_model=list[Token])
async def api_tokens(service: TokenService = Depends(get_service)):
    try:
        return await service.list_tokens()
    except Exception:
        logger.exception("Failed to fetch tokens")
        return _message(500, "Failed to fetch tokens")


@router.get("/api/tokens/search", response_model=list[Token])
async def api_search_tokens(
    contract: str | None = None,
    channel: str | None = None,
    service: TokenService = Depends(get_service),
):
    if not contract:
        return _message(400, "Query parameter 'contract' is required")
    try:
        return await service.search_tokens_by_contract(contract, channel or None)
    except Exception:
        logger.exception("Failed to search tokens (contract=%s)", contract)
        return _message(500, "Failed to search tokens")


@router.get("/api/tokens/common", response_model=list[TokenWithChannels])
async def api_common_tokens(
    request: Request,
    min_channels: str | None = Query(None, alias="minChannels"),
    service: TokenService = Depends(get_service),
):
    default = request.app.state.settings.default_min_channels
    try:
        return await service.get_common_tokens(_parse_min_channels(min_channels, default))
    except Exception:
        logger.exception("Failed to fetch common tokens")
        return _message(500, "Failed to fetch common tokens")


@router.get("/api/tokens/favorites", response_model=list[TokenWithChannels])
async def api_favorite_tokens(service: TokenService = Depends(get_service)):
    try:
        return await service.get_favorite_tokens()
    except Exception:
        logger.exception("Failed to fetch favorite tokens")
        return _message(500, "Failed to fetch favorite tokens")


@router.post("/api/tokens", status_code=201, response_model=Token)
async def api_create_token(request: Request, service: TokenService = Depends(get_service)):
    body = await _json_body(request)
    try:
        data = TokenCreate.model_validate(body)
    except ValidationError as exc:
        return _invalid("Invalid token data", exc)
    try:
        return await service.create_token(data)
    except Exception:
        logger.exception("Failed to create token")
        return _message(500, "Failed to create token")


@router.get("/api/tokens/{token_id}", response_model=Token)
async def api_get_token(token_id: str, service: TokenService = Depends(get_service)):
    parsed = _parse_id(token_id)
    if parsed is None:
        return _message(400, "Invalid token ID")
    try:
        token = await service.get_token(parsed)
    except Exception:
        logger.exception("Failed to fetch token %s", token_id)
        return _message(500, "Failed to fetch token")
    if token is None:
        return _message(404, "Token not found")
    return token


@router.get("/api/tokens/{token_id}/channels", response_model=TokenWithChannels)
async def api_token_channels(token_id: str, service: TokenService = Depends(get_service)):
    parsed = _parse_id(token_id)
    if parsed is None:
        return _message(400, "Invalid token ID")
    try:
        return await service.get_token_channels(parsed)
    except TokenNotFoundError:
        return _message(404, "Token not found")
    except Exception:
        logger.exception("Failed to fetch channels for token %s", token_id)
        return _message(500, "Failed to fetch token channels")


@router.patch("/api/tokens/{token_id}", response_model=Token)
async def api_update_token(
    token_id: str, request: Request, service: TokenService = Depends(get_service)
):
    parsed = _parse_id(token_id)
    if parsed is None:
        return _message(400, "Invalid token ID")
    body = await _json_body(request)
    try:
        data = TokenUpdate.model_validate(body)
    except ValidationError as exc:
        return _invalid("Invalid token data", exc)
    try:
        token = await service.update_token(parsed, data)
    except Exception:
        logger.exception("Failed to update token %s", token_id)
        return _message(500, "Failed to update token")
    if token is None:
        return _message(404, "Token not found")
    return token


@router.delete("/api/tokens/{token_id}")
async def api_delete_token(token_id: str, service: TokenService = Depends(get_service)):
    parsed = _parse_id(token_id)
    if parsed is None:
        return _message(400, "Invalid token ID")
    try:
        deleted = await service.delete_token(parsed)
    except Exception:
        logger.exception("Failed to delete token %s", token_id)
        return _message(500, "Failed to delete token")
    if not deleted:
        return _message(404, "Token not found")
    return {"message": "Token deleted successfully"}


# ═══════════════════════════════════════════════════════════════════════════
# Favorites
# ═══════════════════════════════════════════════════════════════════════════

@router.get("/api/tokens/{address}/favorite", response_model=FavoriteStatus)
async def api_favorite_status(address: str, service: TokenService = Depends(get_service)):
    try:
        favorite = await service.get_favorite_status(address)
    except Exception:
        logger.exception("Failed to read favorite status for %s", address)
        return _message(500, "Failed to read token favorite status")
    if favorite is None:
        return _message(404, "Token not found")
    return FavoriteStatus(address=address, favorite=favorite)


@router.post("/api/tokens/{address}/favorite", response_model=FavoriteStatus)
async def api_toggle_favorite(address: str, service: TokenService = Depends(get_service)):
    try:
        favorite = await service.toggle_favorite(address)
    except TokenNotFoundError:
        return _message(404, "Token not found")
    except Exception:
        logger.exception("Failed to toggle favorite status for %s", address)
        return _message(500, "Failed to update token favorite status")
    return FavoriteStatus(address=address, favorite=favorite)


# ═══════════════════════════════════════════════════════════════════════════
# Channel scraper ingestion
# ═══════════════════════════════════════════════════════════════════════════

@router.post("/api/telegram/webhook")
async def api_telegram_webhook(request: Request, service: TokenService = Depends(get_service)):
    body = await _json_body(request)
    if not isinstance(body, dict):
        return _message(400, "Channel ID and token data are required")

    channel_slug = body.get("channelTelegramId")
    token_data = body.get("tokenData")
    if not channel_slug or not token_data:
        return _message(400, "Channel ID and token data are required")

    try:
        token = await service.ingest_sighting(str(channel_slug), token_data)
    except ChannelNotFoundError:
        return _message(404, "Channel not found")
    except ValidationError as exc:
        return _invalid("Invalid data format", exc)
    except Exception:
        logger.exception("Failed to process webhook data for %s", channel_slug)
        return _message(500, "Failed to process webhook data")

    return {"message": "Token data processed successfully", "token": _dump(token)}
