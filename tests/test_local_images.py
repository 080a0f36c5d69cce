"""Tests for local client profile pictures."""

from pathlib import Path
from uuid import uuid4

import pytest
from PIL import Image

from clientist.services.images import ImageStorageError, InvalidImageError, LocalImageStore

from conftest import run


def make_image(path: Path, fmt: str) -> Path:
    Image.new("RGB", (16, 16), color=(200, 30, 30)).save(path, format=fmt)
    return path


@pytest.fixture
def images(tmp_path):
    return LocalImageStore(tmp_path / "client_profiles")


class TestLocalImageStore:
    """Save, look up and delete."""

    def test_save_and_lookup(self, images, tmp_path):
        """Test a saved picture is found by client id."""
        client_id = uuid4()
        source = make_image(tmp_path / "pick.png", "PNG")

        uri = run(images.save_client_image(client_id, source))

        assert uri.startswith("file://")
        assert (images.images_dir / f"client_profile_{client_id}.png").is_file()
        assert run(images.get_client_image_uri(client_id)) == uri

    def test_delete_then_lookup_returns_none(self, images, tmp_path):
        """Test deleting removes the file and the lookup finds nothing."""
        client_id = uuid4()
        uri = run(images.save_client_image(client_id, make_image(tmp_path / "a.jpg", "JPEG")))

        run(images.delete_client_image(uri))

        assert not (images.images_dir / f"client_profile_{client_id}.jpg").exists()
        assert run(images.get_client_image_uri(client_id)) is None

    def test_new_picture_replaces_old(self, images, tmp_path):
        """Test each client keeps at most one picture."""
        client_id = uuid4()
        run(images.save_client_image(client_id, make_image(tmp_path / "a.png", "PNG")))
        uri = run(images.save_client_image(client_id, make_image(tmp_path / "b.jpeg", "JPEG")))

        assert not (images.images_dir / f"client_profile_{client_id}.png").exists()
        assert uri.endswith(".jpeg")
        assert run(images.get_client_image_uri(client_id)) == uri

    def test_file_uri_source(self, images, tmp_path):
        """Test sources can be given as file:// URIs."""
        source = make_image(tmp_path / "pick.png", "PNG")
        uri = run(images.save_client_image(uuid4(), source.resolve().as_uri()))
        assert uri.endswith(".png")

    def test_cleanup(self, images, tmp_path):
        """Test cleanup removes the picture and reports whether one existed."""
        client_id = uuid4()
        run(images.save_client_image(client_id, make_image(tmp_path / "a.png", "PNG")))

        assert run(images.cleanup(client_id)) is True
        assert run(images.cleanup(client_id)) is False

    def test_lookup_without_picture(self, images):
        """Test lookups for clients without a picture."""
        assert run(images.get_client_image_uri(uuid4())) is None

    def test_delete_never_raises(self, images, tmp_path):
        """Test deleting something that is not there is fine."""
        run(images.delete_client_image((tmp_path / "missing.png").as_uri()))
        run(images.delete_client_image(None))

    def test_delete_leaves_files_outside_images_dir(self, images, tmp_path):
        """Test only pictures inside the images directory can be deleted."""
        outsider = make_image(tmp_path / "holiday.png", "PNG")

        run(images.delete_client_image(outsider.resolve().as_uri()))
        run(images.delete_client_image(str(outsider)))
        run(images.delete_client_image((images.images_dir / ".." / "holiday.png").as_uri()))

        assert outsider.is_file()

    def test_extra_configured_format_is_found_and_removed(self, tmp_path):
        """Test a format added in settings is looked up and cleaned up too."""
        images = LocalImageStore(
            tmp_path / "client_profiles",
            supported_formats=("jpg", "png", "gif"),
        )
        client_id = uuid4()
        uri = run(images.save_client_image(client_id, make_image(tmp_path / "anim.gif", "GIF")))

        assert run(images.get_client_image_uri(client_id)) == uri
        assert run(images.cleanup(client_id)) is True
        assert run(images.get_client_image_uri(client_id)) is None
        assert not (images.images_dir / f"client_profile_{client_id}.gif").exists()


class TestImageValidation:
    """Unreadable sources are rejected before copying."""

    def test_not_an_image(self, images, tmp_path):
        """Test a text file with an image extension is rejected."""
        fake = tmp_path / "fake.png"
        fake.write_text("not an image")
        with pytest.raises(InvalidImageError):
            run(images.save_client_image(uuid4(), fake))
        assert not images.images_dir.exists() or not any(images.images_dir.iterdir())

    def test_unsupported_extension(self, images, tmp_path):
        """Test formats outside the supported list are rejected."""
        source = make_image(tmp_path / "anim.gif", "GIF")
        with pytest.raises(InvalidImageError):
            run(images.save_client_image(uuid4(), source))

    def test_missing_source(self, images, tmp_path):
        """Test a missing source file is rejected."""
        with pytest.raises(InvalidImageError):
            run(images.save_client_image(uuid4(), tmp_path / "nope.jpg"))

    def test_invalid_image_is_a_storage_error(self):
        """Test the exception hierarchy."""
        assert issubclass(InvalidImageError, ImageStorageError)


class TestLocalFileUri:
    """Tests for is_local_file_uri."""

    def test_file_scheme(self, images):
        assert images.is_local_file_uri("file:///tmp/x.png")

    def test_path_inside_images_dir(self, images):
        assert images.is_local_file_uri(str(images.images_dir / "client_profile_x.png"))

    def test_remote_and_empty(self, images, tmp_path):
        assert not images.is_local_file_uri("https://cdn.example.com/x.png")
        assert not images.is_local_file_uri(str(tmp_path / "elsewhere.png"))
        assert not images.is_local_file_uri(None)
        assert not images.is_local_file_uri("")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
