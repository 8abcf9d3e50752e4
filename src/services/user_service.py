from __future__ import annotations

from db.repositories import UserRepository
from domain.users import CreateUserRequest, User, UserAlreadyExistsError, UserNotFoundError


class UserService:
    def __init__(self, repository: UserRepository) -> None:
        self.repository = repository

    def create_user(self, request: CreateUserRequest) -> User:
        if self.repository.get_by_username(request.username) is not None:
            raise UserAlreadyExistsError(f"Username already exists: {request.username}")
        if self.repository.get_by_email(request.email) is not None:
            raise UserAlreadyExistsError(f"Email already exists: {request.email}")

        user = User(
            username=request.username,
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
        )
        return self.repository.create(user)

    def get_user(self, user_id: int) -> User:
        user = self.repository.get(user_id)
        if user is None:
            raise UserNotFoundError(f"User not found with id: {user_id}")
        return user

    def get_user_by_username(self, username: str) -> User:
        user = self.repository.get_by_username(username)
        if user is None:
            raise UserNotFoundError(f"User not found with username: {username}")
        return user

    def list_users(self) -> list[User]:
        return self.repository.list()


__all__ = ["UserService"]
