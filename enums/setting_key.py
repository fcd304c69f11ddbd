from enum import Enum


class SettingKey(Enum):
    SHOP_NAME = "shop_name"
    SHOP_DESCRIPTION = "shop_description"
    SHOP_LOGO = "shop_logo"
    LOW_STOCK_THRESHOLD = "low_stock_threshold"
    CHECKIN_REWARD = "checkin_reward"
    CHECKIN_ENABLED = "checkin_enabled"
    NOINDEX_ENABLED = "noindex_enabled"
    # Internal flags
    SCHEMA_VERSION = "schema_version"
    LOGIN_USERS_BACKFILLED = "login_users_backfilled"
