# database_models.py - records stored by the gateway
from typing import Any, Dict


class User:
    def __init__(self, id, first_name, last_name, email, password, created_at=None):
        self.id = id
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.password = password
        self.created_at = created_at

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "User":
        return cls(
            id=row['id'],
            first_name=row['first_name'],
            last_name=row['last_name'],
            email=row['email'],
            password=row['password'],
            created_at=row.get('created_at'),
        )

    @property
    def display_name(self) -> str:
        """First and last name joined by a single space"""
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"User(id={self.id!r}, email={self.email!r})"


class Post:
    def __init__(self, id, image_url, caption, created_at):
        self.id = id
        self.image_url = image_url
        self.caption = caption
        self.created_at = created_at

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Post":
        return cls(
            id=row['id'],
            image_url=row['image_url'],
            caption=row['caption'],
            created_at=row['created_at'],
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape returned by the API"""
        return {
            'id': self.id,
            'imageUrl': self.image_url,
            'caption': self.caption,
            'createdAt': self.created_at,
        }

    def __repr__(self):
        return f"Post(id={self.id!r}, created_at={self.created_at!r})"
