import os
from flask import Flask, request, jsonify, send_file, url_for
from flask_cors import CORS
from werkzeug.utils import secure_filename

import settings
from File_Compression import compress_file, decompress_file
from huffman_errors import FormatError, OutputLimitError

# -----------------------------------------------------------
# FLASK APP SETUP
# -----------------------------------------------------------
app = Flask(__name__)
app.config.update(
    DATA_DIR=settings.DATA_DIR,
    HEADER_FORMAT=settings.HEADER_FORMAT,
    MAX_CONTENT_LENGTH=settings.MAX_UPLOAD_MB * 1024 * 1024,
    MAX_OUTPUT_SIZE=settings.MAX_OUTPUT_MB * 1024 * 1024,
)
app.logger.setLevel(settings.LOG_LEVEL)
CORS(app)

NOT_COMPRESSED = "not a recognized compressed file"

# -----------------------------------------------------------
# HELPER FUNCTIONS
# -----------------------------------------------------------
def storage_dir():
    path = os.path.abspath(app.config["DATA_DIR"])
    os.makedirs(path, exist_ok=True)
    return path


def requested_header_format():
    """Header format from the form field, falling back to the app configuration."""
    return settings.resolve_header_format(
        request.form.get("header_format") or app.config["HEADER_FORMAT"]
    )


def uploaded_file():
    file = request.files.get("file")
    if not file or not file.filename:
        return None, None
    return file, secure_filename(file.filename)

# -----------------------------------------------------------
# ROUTES
# -----------------------------------------------------------
@app.route("/")
def home():
    return jsonify({
        "service": "huffman-codec",
        "header_format": app.config["HEADER_FORMAT"],
        "header_formats": list(settings.HEADER_FORMATS),
        "endpoints": ["/compress_file", "/decompress_file", "/download/<filename>"],
    })


@app.route("/compress_file", methods=["POST"])
def compress_file_route():
    file, filename = uploaded_file()
    if not filename:
        return jsonify({"success": False, "error": "No file uploaded"}), 400

    try:
        header_format = requested_header_format()
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    try:
        user_dir = storage_dir()
        input_path = os.path.join(user_dir, filename)
        file.save(input_path)

        # Compress file using Huffman algorithm
        compressed_filename = f"{filename}{settings.COMPRESSED_SUFFIX}"
        compressed_path = os.path.join(user_dir, compressed_filename)
        compress_file(input_path, compressed_path, header_format)

        # File size stats
        original_size = os.path.getsize(input_path)
        compressed_size = os.path.getsize(compressed_path)
        saved = original_size - compressed_size
        saved_percent = round(saved / original_size * 100, 2) if original_size else 0

        return jsonify({
            "success": True,
            "filename": filename,
            "compressed_filename": compressed_filename,
            "header_format": header_format,
            "original_size": original_size,
            "compressed_size": compressed_size,
            "saved": saved,
            "saved_percent": saved_percent,
            "download_url": url_for("download_file", filename=compressed_filename),
        })

    except Exception:
        app.logger.exception("Error in /compress_file")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@app.route("/decompress_file", methods=["POST"])
def decompress_file_route():
    file, filename = uploaded_file()
    if not filename:
        return jsonify({"success": False, "error": "No file uploaded"}), 400
    if not filename.endswith(settings.COMPRESSED_SUFFIX):
        return jsonify({"success": False, "error": "Invalid file type"}), 400

    try:
        header_format = requested_header_format()
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    try:
        user_dir = storage_dir()
        input_path = os.path.join(user_dir, filename)
        file.save(input_path)

        # keep original filename
        output_filename = filename[: -len(settings.COMPRESSED_SUFFIX)] or "decompressed"
        output_path = os.path.join(user_dir, output_filename)

        try:
            decompress_file(
                input_path, output_path, header_format,
                max_output_size=app.config["MAX_OUTPUT_SIZE"],
            )
        except FormatError as e:
            app.logger.warning("Rejected %s: %s", filename, e)
            return jsonify({"success": False, "error": NOT_COMPRESSED}), 400
        except OutputLimitError as e:
            app.logger.warning("Rejected %s: %s", filename, e)
            return jsonify({"success": False, "error": "Decompressed file too large"}), 413

        return jsonify({
            "success": True,
            "original_huff": filename,
            "decompressed_file": output_filename,
            "decompressed_size": os.path.getsize(output_path),
            "download_url": url_for("download_file", filename=output_filename),
        })

    except Exception:
        app.logger.exception("Error in /decompress_file")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@app.route("/download/<filename>")
def download_file(filename):
    filename = secure_filename(filename)
    file_path = os.path.join(storage_dir(), filename)

    if not filename or not os.path.isfile(file_path):
        return jsonify({"success": False, "error": "File not found"}), 404

    return send_file(
        file_path,
        as_attachment=True,
        download_name=filename,
        mimetype="application/octet-stream",
    )

# -----------------------------------------------------------
if __name__ == "__main__":
    app.run(debug=True)
