"""Profile and settings repository. Rows are created on first access."""

from ..models import Profile, UserSettings


class ProfileRepository:
    """Get-or-create access to a user's Profile and UserSettings."""

    def __init__(self, db):
        self.db = db

    def get_profile(self, user_id: str) -> Profile | None:
        return self.db.query(Profile).filter(Profile.id == user_id).first()

    def get_or_create_profile(self, user_id: str, email: str | None = None) -> Profile:
        profile = self.get_profile(user_id)
        if profile is None:
            profile = Profile(id=user_id, email=email)
            self.db.add(profile)
            self.db.flush()
        return profile

    def get_settings(self, user_id: str) -> UserSettings | None:
        return self.db.query(UserSettings).filter(UserSettings.user_id == user_id).first()

    def get_or_create_settings(self, user_id: str) -> UserSettings:
        user_settings = self.get_settings(user_id)
        if user_settings is None:
            user_settings = UserSettings(user_id=user_id, default_word_count=2000)
            self.db.add(user_settings)
            self.db.flush()
        return user_settings
