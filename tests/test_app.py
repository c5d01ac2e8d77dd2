import io
import os

from File_Compression import compress

SAMPLE = b"hello huffman " * 20


def _upload(client, url, data, filename, **form):
    form["file"] = (io.BytesIO(data), filename)
    return client.post(url, data=form, content_type="multipart/form-data")


def test_home_describes_service(client):
    response = client.get("/")
    assert response.status_code == 200
    body = response.get_json()
    assert body["header_format"] == "delimited"
    assert set(body["header_formats"]) == {"delimited", "length_prefixed"}


def test_compress_then_download(client, app):
    response = _upload(client, "/compress_file", SAMPLE, "sample.txt")
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["compressed_filename"] == "sample.txt.huff"
    assert body["original_size"] == len(SAMPLE)
    assert body["saved"] == body["original_size"] - body["compressed_size"]

    stored = os.path.join(app.config["DATA_DIR"], "sample.txt.huff")
    assert os.path.isfile(stored)

    download = client.get(body["download_url"])
    assert download.status_code == 200
    assert download.data == compress(SAMPLE)
    download.close()


def test_compress_with_length_prefixed_header(client):
    response = _upload(client, "/compress_file", SAMPLE, "sample.txt", header_format="length_prefixed")
    assert response.status_code == 200
    download = client.get(response.get_json()["download_url"])
    assert download.data.startswith(b"HUF1")
    download.close()


def test_decompress_round_trip(client):
    response = _upload(client, "/decompress_file", compress(SAMPLE), "greeting.txt.huff")
    assert response.status_code == 200
    body = response.get_json()
    assert body["decompressed_file"] == "greeting.txt"
    assert body["decompressed_size"] == len(SAMPLE)

    download = client.get(body["download_url"])
    assert download.data == SAMPLE
    download.close()


def test_compress_without_file(client):
    response = client.post("/compress_file", data={}, content_type="multipart/form-data")
    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_unknown_header_format(client):
    response = _upload(client, "/compress_file", SAMPLE, "sample.txt", header_format="zip")
    assert response.status_code == 400


def test_decompress_requires_huff_extension(client):
    response = _upload(client, "/decompress_file", compress(SAMPLE), "sample.txt")
    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid file type"


def test_decompress_rejects_unrecognized_file(client, app):
    response = _upload(client, "/decompress_file", b"plain text, not huffman", "fake.txt.huff")
    assert response.status_code == 400
    assert response.get_json()["error"] == "not a recognized compressed file"
    assert not os.path.exists(os.path.join(app.config["DATA_DIR"], "fake.txt"))


def test_download_missing_file(client):
    response = client.get("/download/nothing-here.huff")
    assert response.status_code == 404


def test_rejected_upload_keeps_stored_original(client, app):
    assert _upload(client, "/compress_file", SAMPLE, "s.txt").status_code == 200
    stored = os.path.join(app.config["DATA_DIR"], "s.txt")

    response = _upload(client, "/decompress_file", b"junk, not a huffman file", "s.txt.huff")
    assert response.status_code == 400
    with open(stored, "rb") as f:
        assert f.read() == SAMPLE
    assert not [name for name in os.listdir(app.config["DATA_DIR"]) if name.endswith(".part")]


def test_oversized_decompression_is_refused(client, app):
    app.config["MAX_OUTPUT_SIZE"] = 1024
    response = _upload(client, "/decompress_file", b"%%A!!50000000%%--", "big.huff")
    assert response.status_code == 413
    assert response.get_json()["error"] == "Decompressed file too large"
    assert not os.path.exists(os.path.join(app.config["DATA_DIR"], "big"))
