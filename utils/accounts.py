from typing import Optional

from models.user import User, Role
from otp.flows import Channel
from otp.targets import Target

DEFAULT_ROLE = "USER"


def _column(channel: Channel):
    return User.email if channel is Channel.EMAIL else User.phone


class AccountStore:
    """Account lookups and creation keyed by an OTP target."""

    def __init__(self, session):
        self.session = session

    def exists(self, target: Target) -> bool:
        return self.find_by_target(target) is not None

    def find_by_target(self, target: Target) -> Optional[User]:
        return (
            self.session.query(User)
            .filter(_column(target.channel) == target.value)
            .one_or_none()
        )

    def create(self, target: Target, password_hash: str) -> User:
        fields = {"password_hash": password_hash}
        if target.channel is Channel.EMAIL:
            fields["email"] = target.value
        else:
            fields["phone"] = target.value

        user = User(**fields)
        role = self.session.query(Role).filter_by(name=DEFAULT_ROLE).first()
        if role:
            user.roles.append(role)
        self.session.add(user)
        self.session.flush()
        return user
