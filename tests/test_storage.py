import pytest

from fieldaudio.storage import NotMountedError, SdCard, SdCardConfig, StorageError

CONFIG = SdCardConfig(miso_gpio=1, mosi_gpio=2, sclk_gpio=3, cs_gpio=4, max_files=5)


@pytest.fixture
def card(tmp_path):
    sd = SdCard(tmp_path)
    sd.mount(CONFIG)
    return sd


def test_mount_sets_state_and_config(tmp_path):
    sd = SdCard(tmp_path)
    assert sd.mounted is False
    sd.mount(CONFIG)
    assert sd.mounted is True
    assert sd.config == CONFIG


def test_mount_twice_keeps_mounted(card):
    card.mount(CONFIG)
    assert card.mounted is True


def test_mount_missing_root_fails(tmp_path):
    sd = SdCard(tmp_path / "absent")
    with pytest.raises(StorageError):
        sd.mount(CONFIG)
    assert sd.mounted is False


def test_unmount_then_operations_fail(card):
    card.unmount()
    assert card.mounted is False
    with pytest.raises(NotMountedError):
        card.write_file("a.bin", b"x")


def test_context_manager_unmounts(tmp_path):
    with SdCard(tmp_path) as sd:
        sd.mount(CONFIG)
        assert sd.mounted is True
    assert sd.mounted is False


def test_operations_require_mount(tmp_path):
    sd = SdCard(tmp_path)
    with pytest.raises(NotMountedError):
        sd.write_file("a", b"1")
    with pytest.raises(NotMountedError):
        sd.append_file("a", b"1")
    with pytest.raises(NotMountedError):
        sd.read_file("a")
    with pytest.raises(NotMountedError):
        sd.delete_file("a")
    with pytest.raises(NotMountedError):
        sd.create_dir("d")
    with pytest.raises(NotMountedError):
        sd.get_free_space()
    with pytest.raises(NotMountedError):
        sd.save_jpeg(b"\xff\xd8", "img.jpg")
    assert not (tmp_path / "a").exists()
    assert not (tmp_path / "d").exists()


def test_not_mounted_is_storage_error(tmp_path):
    sd = SdCard(tmp_path)
    with pytest.raises(StorageError):
        sd.write_file("a.bin", b"x")


def test_write_read_round_trip(card, tmp_path):
    card.write_file("data.bin", b"\x00\x01\x02hello")
    assert card.read_file("data.bin") == b"\x00\x01\x02hello"
    assert (tmp_path / "data.bin").read_bytes() == b"\x00\x01\x02hello"


def test_write_accepts_text(card):
    card.write_file("m.json", '{"videos": []}')
    assert card.read_file("m.json") == b'{"videos": []}'


def test_write_replaces_contents(card):
    card.write_file("f.txt", b"first version")
    card.write_file("f.txt", b"second")
    assert card.read_file("f.txt") == b"second"


def test_append_accumulates(card):
    card.append_file("log.txt", b"one\n")
    card.append_file("log.txt", b"two\n")
    assert card.read_file("log.txt") == b"one\ntwo\n"


def test_read_limited_by_max_size(card):
    card.write_file("big.bin", b"abcdefgh")
    assert card.read_file("big.bin", 3) == b"abc"
    assert card.read_file("big.bin", 100) == b"abcdefgh"


def test_read_missing_file_fails(card):
    with pytest.raises(StorageError):
        card.read_file("missing.bin")


def test_write_into_missing_directory_fails(card):
    with pytest.raises(StorageError):
        card.write_file("nodir/file.bin", b"x")


def test_delete_file(card, tmp_path):
    card.write_file("gone.bin", b"x")
    card.delete_file("gone.bin")
    assert not (tmp_path / "gone.bin").exists()
    with pytest.raises(StorageError):
        card.delete_file("gone.bin")


def test_create_nested_dir(card, tmp_path):
    card.create_dir("timelapse_data/2024/01/02")
    assert (tmp_path / "timelapse_data" / "2024" / "01" / "02").is_dir()
    card.create_dir("timelapse_data/2024/01/02")
    card.write_file("timelapse_data/2024/01/02/clip.bin", b"v")
    assert card.read_file("timelapse_data/2024/01/02/clip.bin") == b"v"


def test_create_dir_over_file_fails(card):
    card.write_file("blocker", b"x")
    with pytest.raises(StorageError):
        card.create_dir("blocker/sub")


def test_free_space_invariant(card):
    free, total = card.get_free_space()
    assert total > 0
    assert 0 <= free <= total


def test_save_jpeg(card):
    image = b"\xff\xd8\xff\xe0" + bytes(range(16)) + b"\xff\xd9"
    card.save_jpeg(image, "photo.jpg")
    assert card.read_file("photo.jpg") == image


def test_config_default_max_files():
    config = SdCardConfig(miso_gpio=1, mosi_gpio=2, sclk_gpio=3, cs_gpio=4)
    assert config.max_files == 5