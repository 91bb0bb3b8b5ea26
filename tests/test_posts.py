import struct
import zlib

import pytest


def test_create_post(client, db_manager):
    res = client.post("/post", json={"imageUrl": "https://cdn.example/a.jpg", "caption": "hello"})

    assert res.status_code == 201
    assert res.json() == {"message": "Post created successfully!"}

    posts = db_manager.list_posts()
    assert len(posts) == 1
    assert posts[0].image_url == "https://cdn.example/a.jpg"
    assert posts[0].caption == "hello"
    assert posts[0].created_at


@pytest.mark.parametrize("body", [
    {"caption": "no image"},
    {"imageUrl": "https://cdn.example/a.jpg"},
    {"imageUrl": "", "caption": "empty image"},
    {"imageUrl": "https://cdn.example/a.jpg", "caption": ""},
    {},
])
def test_create_post_requires_image_and_caption(client, db_manager, body):
    res = client.post("/post", json=body)

    assert res.status_code == 400
    assert res.json() == {"message": "Image URL and caption are required"}
    assert db_manager.list_posts() == []


def test_create_post_store_failure(client, db_manager):
    with db_manager.get_connection() as conn:
        conn.execute("DROP TABLE posts")

    res = client.post("/post", json={"imageUrl": "a.jpg", "caption": "c"})

    assert res.status_code == 500
    assert res.json() == {"message": "Failed to create post"}


def test_list_posts_newest_first(client):
    for i in range(5):
        client.post("/post", json={"imageUrl": f"https://cdn.example/{i}.jpg", "caption": f"post {i}"})

    res = client.get("/posts")

    assert res.status_code == 200
    posts = res.json()
    assert [p["caption"] for p in posts] == ["post 4", "post 3", "post 2", "post 1", "post 0"]

    timestamps = [p["createdAt"] for p in posts]
    assert timestamps == sorted(timestamps, reverse=True)
    assert set(posts[0]) == {"id", "imageUrl", "caption", "createdAt"}


def test_list_posts_empty(client):
    res = client.get("/posts")

    assert res.status_code == 200
    assert res.json() == []


def test_list_posts_store_failure(client, db_manager):
    with db_manager.get_connection() as conn:
        conn.execute("DROP TABLE posts")

    res = client.get("/posts")

    assert res.status_code == 500
    assert res.json() == {"message": "Failed to fetch posts"}


def test_list_usernames(client):
    client.post("/signup", json={"fname": "Ada", "lname": "Lovelace", "email": "ada@tezu.ac.in", "password": "p"})
    client.post("/signup", json={"fname": "Alan", "lname": "Turing", "email": "alan@tezu.ernet.in", "password": "p"})

    res = client.get("/usernames")

    assert res.status_code == 200
    assert sorted(res.json()) == ["Ada Lovelace", "Alan Turing"]


def test_list_usernames_store_failure(client, db_manager):
    with db_manager.get_connection() as conn:
        conn.execute("DROP TABLE users")

    res = client.get("/usernames")

    assert res.status_code == 500
    assert res.json() == {"message": "Failed to fetch usernames"}


def test_upload_image_then_post_it(client, upload_dir, png_bytes):
    res = client.post("/upload", files={"image": ("photo.PNG", png_bytes, "image/png")})

    assert res.status_code == 201
    body = res.json()
    assert body["message"] == "Image uploaded successfully!"
    assert body["filename"].endswith(".png")
    assert body["imageUrl"] == f"/uploads/{body['filename']}"
    assert (upload_dir / body["filename"]).read_bytes() == png_bytes

    served = client.get(body["imageUrl"])
    assert served.status_code == 200
    assert served.content == png_bytes

    created = client.post("/post", json={"imageUrl": body["imageUrl"], "caption": "uploaded"})
    assert created.status_code == 201


def test_upload_filenames_do_not_collide(client, png_bytes):
    names = {
        client.post("/upload", files={"image": ("a.png", png_bytes, "image/png")}).json()["filename"]
        for _ in range(5)
    }

    assert len(names) == 5


def test_upload_requires_file(client):
    res = client.post("/upload")

    assert res.status_code == 400
    assert res.json() == {"message": "Image file is required"}


def test_upload_rejects_non_image(client, upload_dir):
    res = client.post("/upload", files={"image": ("notes.png", b"not an image", "image/png")})

    assert res.status_code == 400
    assert res.json() == {"message": "Uploaded file is not a valid image"}
    assert list(upload_dir.iterdir()) == []


def test_upload_size_limit(client, upload_dir):
    # MAX_UPLOAD_MB is 1 in the test app
    res = client.post("/upload", files={"image": ("big.png", b"0" * (1024 * 1024 + 10), "image/png")})

    assert res.status_code == 413
    assert res.json() == {"message": "Image exceeds the upload size limit"}
    assert list(upload_dir.iterdir()) == []


def png_with_dimensions(width, height):
    """Tiny PNG whose header claims the given size (1-bit grayscale)"""
    def chunk(kind, data):
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    header = struct.pack(">IIBBBBB", width, height, 1, 0, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(b"\x00" * 64))
        + chunk(b"IEND", b"")
    )


def test_upload_rejects_oversized_dimensions(client, upload_dir):
    res = client.post("/upload", files={"image": ("huge.png", png_with_dimensions(20000, 20000), "image/png")})

    assert res.status_code == 413
    assert res.json() == {"message": "Image dimensions exceed the allowed size"}
    assert list(upload_dir.iterdir()) == []


def test_health(client):
    res = client.get("/health")

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "healthy"
    assert body["database"]["status"] == "healthy"
    assert body["realtime_connections"] == 0
