"""
Admin Service
User moderation through the Supabase Auth admin API: bans, unbans, staff
promotion and user listing. Every ban/unban is also written to ban_history.

Author: ReadyMix
Date: 2025-06-09
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from readymix.core.database import get_supabase
from readymix.core.exceptions import NotFoundError, ValidationError
from readymix.domain.account import BanRecord
from readymix.repositories.account_repository import AccountRepository

logger = logging.getLogger(__name__)

USER_PAGE_SIZE = 1000


def ban_duration(banned_until: datetime, now: Optional[datetime] = None) -> str:
    """Supabase ban_duration string (whole hours, rounded up)"""
    now = now or datetime.now(timezone.utc)
    if banned_until.tzinfo is None:
        banned_until = banned_until.replace(tzinfo=timezone.utc)
    seconds = (banned_until - now).total_seconds()
    if seconds <= 0:
        raise ValidationError("Ban date must be in the future")
    return f"{math.ceil(seconds / 3600)}h"


def build_ban_info(
    app_metadata: Dict[str, Any],
    reason: str,
    banned_until: datetime,
    admin_id: str,
    now: datetime
) -> Dict[str, Any]:
    """New ban_info with any current ban pushed onto previous_bans"""
    current = app_metadata.get('ban_info') or {}
    previous = list(current.get('previous_bans') or [])
    if current.get('banned_until'):
        previous.append({
            'reason': current.get('reason') or "Previous ban",
            'banned_at': current.get('banned_at') or now.isoformat(),
            'banned_by': current.get('banned_by') or "unknown",
            'banned_until': current['banned_until'],
        })

    return {
        'reason': reason or "No reason provided",
        'banned_at': now.isoformat(),
        'banned_by': admin_id,
        'banned_until': banned_until.isoformat(),
        'previous_bans': previous,
    }


def _user_summary(user) -> Dict[str, Any]:
    app_metadata = getattr(user, 'app_metadata', None) or {}
    user_metadata = getattr(user, 'user_metadata', None) or {}
    banned_until = getattr(user, 'banned_until', None)
    if isinstance(banned_until, str):
        banned_until = datetime.fromisoformat(banned_until.replace("Z", "+00:00"))

    is_banned = bool(banned_until and banned_until > datetime.now(timezone.utc))
    return {
        'id': str(user.id),
        'email': user.email,
        'full_name': user_metadata.get('full_name') or user_metadata.get('name'),
        'role': app_metadata.get('role') or "customer",
        'status': "banned" if is_banned else "active",
        'banned_until': banned_until.isoformat() if is_banned else None,
        'created_at': str(user.created_at) if getattr(user, 'created_at', None) else None,
        'last_sign_in_at': str(user.last_sign_in_at) if getattr(user, 'last_sign_in_at', None) else None,
    }


class AdminService:

    def __init__(self, account_repo: Optional[AccountRepository] = None, supabase=None):
        self.account_repo = account_repo or AccountRepository()
        self._supabase = supabase

    @property
    def auth_admin(self):
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase.auth.admin

    def _get_user(self, user_id: str):
        response = self.auth_admin.get_user_by_id(user_id)
        if not response or not response.user:
            raise NotFoundError(f"User not found: {user_id}")
        return response.user

    def ban_user(self, user_id: str, reason: str, banned_until: datetime, admin_id: str) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        duration = ban_duration(banned_until, now)

        user = self._get_user(user_id)
        app_metadata = dict(user.app_metadata or {})
        app_metadata['ban_info'] = build_ban_info(app_metadata, reason, banned_until, admin_id, now)

        self.auth_admin.update_user_by_id(user_id, {
            'ban_duration': duration,
            'app_metadata': app_metadata,
        })

        try:
            self.account_repo.add_ban_record(user_id, "ban", admin_id, reason, banned_until)
        except Exception as e:
            logger.warning(f"Failed to log ban history for {user_id}: {e}")

        logger.info(f"User {user_id} banned until {banned_until.isoformat()} by {admin_id}")
        return {
            'user_id': user_id,
            'email': user.email,
            'banned_until': banned_until.isoformat(),
            'ban_info': app_metadata['ban_info'],
        }

    def unban_user(self, user_id: str, admin_id: str) -> Dict[str, Any]:
        user = self._get_user(user_id)
        app_metadata = dict(user.app_metadata or {})
        ban_info = dict(app_metadata.get('ban_info') or {})
        ban_info.update({
            'unbanned_at': datetime.now(timezone.utc).isoformat(),
            'unbanned_by': admin_id,
            'banned_until': None,
        })
        app_metadata['ban_info'] = ban_info

        self.auth_admin.update_user_by_id(user_id, {
            'ban_duration': "none",
            'app_metadata': app_metadata,
        })

        try:
            self.account_repo.add_ban_record(user_id, "unban", admin_id)
        except Exception as e:
            logger.warning(f"Failed to log unban history for {user_id}: {e}")

        logger.info(f"User {user_id} unbanned by {admin_id}")
        return {'user_id': user_id, 'email': user.email, 'ban_info': ban_info}

    def promote_to_staff(self, user_id: str) -> Dict[str, Any]:
        user = self._get_user(user_id)
        app_metadata = dict(user.app_metadata or {})
        if app_metadata.get('role') in ("staff", "admin"):
            raise ValidationError(f"User already has role {app_metadata['role']}")

        app_metadata['role'] = "staff"
        self.auth_admin.update_user_by_id(user_id, {'app_metadata': app_metadata})

        logger.info(f"User {user_id} promoted to staff")
        return {
            'user_id': user_id,
            'email': user.email,
            'role': "staff",
            'promoted_at': datetime.now(timezone.utc).isoformat(),
        }

    def get_user(self, user_id: str) -> Dict[str, Any]:
        """Customer profile as shown on the staff customer page"""
        user = self._get_user(user_id)
        user_metadata = getattr(user, 'user_metadata', None) or {}

        profile = _user_summary(user)
        profile.update({
            'full_name': profile['full_name'] or "",
            'avatar_url': user_metadata.get('avatar_url') or "",
            'phone': getattr(user, 'phone', None) or "",
            'location': user_metadata.get('location') or "",
            'updated_at': str(user.updated_at) if getattr(user, 'updated_at', None) else None,
        })
        return profile

    def list_users(self, page: int = 1, per_page: int = 50) -> List[Dict[str, Any]]:
        users = self.auth_admin.list_users(page=page, per_page=per_page)
        return [_user_summary(user) for user in users]

    def count_users(self) -> int:
        total = 0
        page = 1
        while True:
            users = self.auth_admin.list_users(page=page, per_page=USER_PAGE_SIZE)
            total += len(users)
            if len(users) < USER_PAGE_SIZE:
                return total
            page += 1

    def get_ban_history(self, user_id: str) -> List[BanRecord]:
        return self.account_repo.get_ban_history(user_id)
