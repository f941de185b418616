import dataclasses

import pytest

from random_dir import ALL_FILE_TYPES, DirBuilder, FileType, GeneratorConfig, ValidationError
from random_dir.filetypes import DEVICE_FILE_TYPES, canonical_order, default_file_types


def test_linux_default_enables_every_type_and_arbitrary_names() -> None:
    config = GeneratorConfig.default(platform="linux")

    assert config.printable_names is False
    assert config.file_types == frozenset(ALL_FILE_TYPES)
    assert config.choices == ALL_FILE_TYPES


def test_macos_default_excludes_devices_and_uses_printable_names() -> None:
    config = GeneratorConfig.default(platform="darwin")

    assert config.printable_names is True
    assert not config.file_types & DEVICE_FILE_TYPES
    assert len(config.file_types) == 6
    assert default_file_types("darwin") == config.file_types


def test_device_types_can_be_enabled_explicitly_on_macos() -> None:
    config = GeneratorConfig.default(platform="darwin").with_file_types(ALL_FILE_TYPES)

    assert DEVICE_FILE_TYPES <= config.file_types


def test_empty_file_types_are_rejected() -> None:
    with pytest.raises(ValidationError):
        GeneratorConfig(file_types=frozenset())


def test_non_file_type_members_are_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        GeneratorConfig(file_types=frozenset({"regular"}))  # type: ignore[arg-type]

    assert excinfo.value.context["file_types"] == "regular"


def test_choices_follow_canonical_order_regardless_of_input_order() -> None:
    config = GeneratorConfig(file_types=[FileType.HARD_LINK, FileType.REGULAR, FileType.FIFO])  # type: ignore[arg-type]

    assert config.choices == (FileType.REGULAR, FileType.FIFO, FileType.HARD_LINK)
    assert canonical_order({FileType.SYMLINK, FileType.DIRECTORY}) == (
        FileType.DIRECTORY,
        FileType.SYMLINK,
    )


def test_config_is_immutable_and_copies_on_change() -> None:
    config = GeneratorConfig(printable_names=False, file_types=frozenset({FileType.REGULAR}))
    printable = config.with_printable_names(True)

    assert config.printable_names is False
    assert printable.printable_names is True
    assert printable.file_types == config.file_types
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.printable_names = True  # type: ignore[misc]


def test_dir_builder_is_fluent_over_config() -> None:
    builder = DirBuilder().printable_names(True).file_types([FileType.REGULAR, FileType.SYMLINK])

    assert builder.config.printable_names is True
    assert builder.config.choices == (FileType.REGULAR, FileType.SYMLINK)
