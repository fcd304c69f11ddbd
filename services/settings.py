import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_commit
from enums.setting_key import SettingKey
from exceptions.settings import InvalidSettingValueException
from models.setting import ShopSettingsDTO
from repositories.settings import SettingsRepository

SHOP_SETTING_KEYS = [
    SettingKey.SHOP_NAME,
    SettingKey.SHOP_DESCRIPTION,
    SettingKey.SHOP_LOGO,
    SettingKey.LOW_STOCK_THRESHOLD,
    SettingKey.CHECKIN_REWARD,
    SettingKey.CHECKIN_ENABLED,
    SettingKey.NOINDEX_ENABLED,
]


def _parse_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logging.warning(f"Ignoring non-numeric setting value '{value}', using {default}")
        return default
    return parsed if parsed >= 0 else default


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in ("true", "1", "yes", "on"):
        return True
    if normalized in ("false", "0", "no", "off"):
        return False
    return default


class ShopSettingsService:
    """
    Typed access to the shop settings stored in the key-value settings table.

    Missing or unparseable values fall back to the defaults of ShopSettingsDTO.
    """

    @staticmethod
    async def get_shop_settings(session: AsyncSession | Session) -> ShopSettingsDTO:
        raw = await SettingsRepository.get_many([key.value for key in SHOP_SETTING_KEYS], session)
        defaults = ShopSettingsDTO()
        return ShopSettingsDTO(
            shop_name=raw[SettingKey.SHOP_NAME.value],
            shop_description=raw[SettingKey.SHOP_DESCRIPTION.value],
            shop_logo=raw[SettingKey.SHOP_LOGO.value],
            low_stock_threshold=_parse_int(raw[SettingKey.LOW_STOCK_THRESHOLD.value], defaults.low_stock_threshold),
            checkin_reward=_parse_int(raw[SettingKey.CHECKIN_REWARD.value], defaults.checkin_reward),
            checkin_enabled=_parse_bool(raw[SettingKey.CHECKIN_ENABLED.value], defaults.checkin_enabled),
            noindex_enabled=_parse_bool(raw[SettingKey.NOINDEX_ENABLED.value], defaults.noindex_enabled),
        )

    @staticmethod
    async def get_low_stock_threshold(session: AsyncSession | Session) -> int:
        value = await SettingsRepository.get(SettingKey.LOW_STOCK_THRESHOLD.value, session)
        return _parse_int(value, ShopSettingsDTO().low_stock_threshold)

    @staticmethod
    async def save_shop_settings(updates: dict, session: AsyncSession | Session) -> ShopSettingsDTO:
        """
        Validate and persist a partial update of the shop settings.

        Args:
            updates: Field name -> new value, field names as in ShopSettingsDTO

        Raises:
            InvalidSettingValueException: Unknown key, empty shop name or a negative number
        """
        known = {key.value for key in SHOP_SETTING_KEYS}
        validated: dict[str, str] = {}

        for key, value in updates.items():
            if key not in known:
                raise InvalidSettingValueException(key, value, "unknown setting")

            if key == SettingKey.SHOP_NAME.value:
                if value is None or not str(value).strip():
                    raise InvalidSettingValueException(key, value, "shop name cannot be empty")
                validated[key] = str(value).strip()
            elif key in (SettingKey.LOW_STOCK_THRESHOLD.value, SettingKey.CHECKIN_REWARD.value):
                try:
                    number = int(value)
                except (TypeError, ValueError):
                    raise InvalidSettingValueException(key, value, "must be an integer")
                if isinstance(value, bool) or number < 0:
                    raise InvalidSettingValueException(key, value, "must be a non-negative integer")
                validated[key] = str(number)
            elif key in (SettingKey.CHECKIN_ENABLED.value, SettingKey.NOINDEX_ENABLED.value):
                if not isinstance(value, bool):
                    raise InvalidSettingValueException(key, value, "must be true or false")
                validated[key] = "true" if value else "false"
            else:
                validated[key] = "" if value is None else str(value).strip()

        for key, value in validated.items():
            await SettingsRepository.set(key, value, session)
        await session_commit(session)

        if validated:
            logging.info(f"⚙️ Shop settings updated: {', '.join(sorted(validated))}")
        return await ShopSettingsService.get_shop_settings(session)
