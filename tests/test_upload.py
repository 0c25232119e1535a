import io
import os

import pytest

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00\x00\x00\rIHDR' + b'\x00' * 64
PDF_BYTES = b'%PDF-1.4\n%\xe2\xe3\xcf\xd3\n' + b'0' * 64


@pytest.fixture
def signed_in(client, make_user, login):
    make_user('amina@udsm.ac.tz')
    return login(client, 'amina@udsm.ac.tz')


def upload(client, content, filename):
    return client.post('/api/upload', data={"file": (io.BytesIO(content), filename)},
                       content_type='multipart/form-data')


class TestUpload:
    def test_png_upload(self, app, signed_in):
        response = upload(signed_in, PNG_BYTES, 'hub logo.png')
        body = response.get_json()

        assert response.status_code == 201
        assert body["mime_type"] == 'image/png'
        assert body["filename"].endswith('_hub_logo.png')
        assert body["url"] == f'/uploads/{body["filename"]}'
        assert os.path.isfile(os.path.join(app.config['UPLOAD_FOLDER'], body["filename"]))

        served = signed_in.get(body["url"])
        assert served.data == PNG_BYTES

    def test_pdf_upload(self, signed_in):
        response = upload(signed_in, PDF_BYTES, 'report.pdf')
        assert response.get_json()["mime_type"] == 'application/pdf'

    def test_extension_not_allowed(self, signed_in):
        response = upload(signed_in, b'plain text', 'notes.txt')
        assert response.status_code == 400
        assert response.get_json()["error"] == "File type not allowed"

    def test_content_must_match(self, signed_in):
        response = upload(signed_in, b'not really an image', 'photo.png')
        assert response.status_code == 400
        assert response.get_json()["error"].startswith("Invalid file type detected")

    def test_missing_file(self, signed_in):
        response = signed_in.post('/api/upload', data={}, content_type='multipart/form-data')
        assert response.status_code == 400

    def test_requires_login(self, client):
        assert upload(client, PNG_BYTES, 'logo.png').status_code == 401
