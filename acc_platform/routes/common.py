import re
from typing import Tuple, Optional
from enum import IntEnum
from flask import current_app, request, g
from flask_smorest import abort, Blueprint as BlueprintOrig

READ_ONLY_METHODS = ["GET", "HEAD", "OPTIONS"]


class Blueprint(BlueprintOrig):
    """A Blueprint subclass to use, that we may want to modify."""


class UserType(IntEnum):
    ADMIN = 1
    SUPERVISOR = 2
    USER = 3


class UserIdPatternMatcher:
    PATTERN_CONFIG_KEYS = {
        UserType.ADMIN: "APP_ADMIN_SUBJECT_REGEX",
        UserType.SUPERVISOR: "APP_SUPERVISOR_SUBJECT_REGEX",
        UserType.USER: "APP_USER_SUBJECT_REGEX",
    }

    def __init__(self):
        self._regex_patterns = {}

    def get_pattern(self, user_type: UserType) -> re.Pattern:
        pattern_config_key = self.PATTERN_CONFIG_KEYS[user_type]
        regex = current_app.config[pattern_config_key]
        regex_patterns = self._regex_patterns
        regex_pattern = regex_patterns.get(regex)
        if regex_pattern is None:
            regex_pattern = regex_patterns[regex] = re.compile(regex)

        return regex_pattern

    def match(self, user_id: str) -> Tuple[UserType, Optional[int]]:
        for user_type in UserType:
            pattern = self.get_pattern(user_type)
            m = pattern.match(user_id)
            if m:
                platform_user_id = (
                    int(m.group(1))
                    if user_type == UserType.USER
                    else None
                )
                return user_type, platform_user_id

        abort(403)


user_id_pattern_matcher = UserIdPatternMatcher()


def parse_acc_user_id_header() -> Tuple[UserType, Optional[int]]:
    user_id = request.headers.get("X-Acc-User-Id")
    if user_id is None:
        user_type = UserType.ADMIN
        platform_user_id = None
    else:
        user_type, platform_user_id = user_id_pattern_matcher.match(user_id)

    g.admin = user_type == UserType.ADMIN
    return user_type, platform_user_id


def ensure_admin():
    user_type, _ = parse_acc_user_id_header()
    if user_type == UserType.USER:
        abort(403)

    if (
        user_type == UserType.SUPERVISOR
        and request.method not in READ_ONLY_METHODS
    ):
        abort(403)
