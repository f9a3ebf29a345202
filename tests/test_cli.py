import json
from datetime import timedelta

from fireplots.cli import main, parse_args

from conftest import make_bufkit


def test_parse_args_files():
    args = parse_args(["files", "--site-name", "KMSO", "--model", "gfs", "--start", "2017-09-02-12",
                       "--end", "2017-09-03-00", "a.buf", "b.buf"])
    assert args.command == "files"
    assert args.start.hour == 12
    assert [p.name for p in args.files] == ["a.buf", "b.buf"]
    assert args.summary is None


def test_validate_config(tmp_path):
    assert main(["--config", str(tmp_path / "none.yaml"), "validate-config"]) == 0


def test_invalid_config_fails(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("days_back: -3\n")
    assert main(["--config", str(path), "validate-config"]) == 1


def test_missing_archive_fails(tmp_path):
    assert main(["--config", str(tmp_path / "none.yaml"), "archive", "--archive", str(tmp_path / "nowhere")]) == 1


def test_files_command(tmp_path, init_time):
    buf = tmp_path / "run.buf"
    buf.write_text(make_bufkit(init_time))
    out = tmp_path / "images"
    start = init_time.strftime("%Y-%m-%d-%H")
    end = (init_time + timedelta(hours=6)).strftime("%Y-%m-%d-%H")
    rc = main(["--config", str(tmp_path / "none.yaml"), "--output-dir", str(out), "--figure-dpi", "40",
               "files", "--site-name", "KMSO", "--model", "gfs", "--start", start, "--end", end, str(buf)])
    assert rc == 0
    assert (out / "kmso_GFS.png").exists()
    assert (out / "kmso_GFS_ens.png").exists()
    manifest = json.loads((out / "manifest.json").read_text())
    assert manifest["command"] == "files"
    assert len(manifest["outputs"]) == 2


def test_save_and_render_commands(tmp_path, init_time):
    buf = tmp_path / "run.buf"
    buf.write_text(make_bufkit(init_time))
    text_dir = tmp_path / "text"
    cfg = str(tmp_path / "none.yaml")
    start = init_time.strftime("%Y-%m-%d-%H")
    end = (init_time + timedelta(hours=6)).strftime("%Y-%m-%d-%H")
    assert main(["--config", cfg, "--output-dir", str(text_dir), "--save", "files", "--site-name", "KMSO",
                 "--model", "gfs", "--start", start, "--end", end, str(buf)]) == 0
    assert (text_dir / "kmso_GFS_hm.dat").exists()
    img = tmp_path / "images"
    assert main(["--config", cfg, "--output-dir", str(img), "render",
                 "--ens", str(text_dir / "kmso_GFS_ens.dat"),
                 "--mrg", str(text_dir / "kmso_GFS_mrg.dat"),
                 "--hm", str(text_dir / "kmso_GFS_hm.dat")]) == 0
    assert (img / "kmso_GFS.png").exists()


def test_files_command_with_missing_input_fails(tmp_path, init_time):
    out = tmp_path / "images"
    start = init_time.strftime("%Y-%m-%d-%H")
    rc = main(["--config", str(tmp_path / "none.yaml"), "--output-dir", str(out), "files", "--site-name", "KMSO",
               "--model", "gfs", "--start", start, "--end", start, str(tmp_path / "missing.buf")])
    assert rc == 1
    assert not (out / "manifest.json").exists()


def test_files_command_with_unparseable_input_fails(tmp_path, init_time):
    buf = tmp_path / "run.buf"
    buf.write_text("not a bufkit file")
    start = init_time.strftime("%Y-%m-%d-%H")
    rc = main(["--config", str(tmp_path / "none.yaml"), "--output-dir", str(tmp_path / "images"), "files",
               "--site-name", "KMSO", "--model", "gfs", "--start", start, "--end", start, str(buf)])
    assert rc == 1


def test_site_command_with_unknown_site_fails(tmp_path, init_time):
    data = tmp_path / "archive" / "data"
    data.mkdir(parents=True)
    (data / f"{init_time:%Y%m%d%H}Z_gfs_kmso.buf").write_text(make_bufkit(init_time))
    out = tmp_path / "images"
    rc = main(["--config", str(tmp_path / "none.yaml"), "--output-dir", str(out), "site",
               "--archive", str(tmp_path / "archive"), "--site", "kxyz", "--model", "gfs",
               "--now", init_time.strftime("%Y-%m-%d-%H")])
    assert rc == 1
    assert not (out / "manifest.json").exists()


def test_site_command(tmp_path, init_time):
    data = tmp_path / "archive" / "data"
    data.mkdir(parents=True)
    (data / f"{init_time:%Y%m%d%H}Z_gfs_kmso.buf").write_text(make_bufkit(init_time))
    out = tmp_path / "images"
    rc = main(["--config", str(tmp_path / "none.yaml"), "--output-dir", str(out), "site",
               "--archive", str(tmp_path / "archive"), "--site", "kmso", "--model", "gfs",
               "--now", (init_time + timedelta(hours=3)).strftime("%Y-%m-%d-%H")])
    assert rc == 0
    assert (out / "kmso_GFS.png").exists()
