import pytest

from robotmarker.marker_sheet import main, make_marker_image, render_marker_sheet


def test_marker_image_is_square_rgb() -> None:
    img = make_marker_image("ROBOT_R1")

    assert img.mode == "RGB"
    assert img.size[0] == img.size[1]


def test_sheet_paginates(tmp_path) -> None:
    output = tmp_path / "markers.pdf"

    # 8 cm markers on A4: 2 columns x 3 rows per page.
    pages = render_marker_sheet([f"ROBOT_R{i}" for i in range(7)], str(output), 8.0)

    assert pages == 2
    assert output.read_bytes().startswith(b"%PDF")


def test_sheet_rejects_bad_input(tmp_path) -> None:
    with pytest.raises(ValueError):
        render_marker_sheet([], str(tmp_path / "a.pdf"))
    with pytest.raises(ValueError):
        render_marker_sheet(["ROBOT_R1"], str(tmp_path / "b.pdf"), marker_size_cm=40.0)


def test_cli_defaults_to_robot_payload(tmp_path) -> None:
    output = tmp_path / "out.pdf"

    code = main(["--config", str(tmp_path / "missing.toml"), "--output", str(output)])

    assert code == 0
    assert output.exists()


def test_zero_marker_size_rejected(tmp_path) -> None:
    with pytest.raises(ValueError):
        render_marker_sheet(["ROBOT_R1"], str(tmp_path / "a.pdf"), marker_size_cm=0)


@pytest.mark.parametrize(
    "config_text, extra_args",
    [("[sheet]\nmarker_size_cm = 0\n", []), ("", ["--size-cm", "0"])],
)
def test_cli_reports_zero_marker_size(tmp_path, config_text, extra_args) -> None:
    config = tmp_path / "config.toml"
    config.write_text(config_text, encoding="utf-8")
    output = tmp_path / "out.pdf"

    code = main(["--config", str(config), "--output", str(output), *extra_args])

    assert code == 1
    assert not output.exists()
