import pytest
from unittest.mock import patch, MagicMock
from roundcaddy.services.s3_service import S3Service


def test_get_upload_url_success(client):
    """Presigned POST for a swing video."""
    with patch('roundcaddy.routers.upload.S3Service') as mock_s3_service:
        mock_instance = MagicMock()
        mock_instance.generate_presigned_upload_url.return_value = (
            "https://test-bucket.s3.amazonaws.com/",
            "https://test-bucket.s3.us-east-1.amazonaws.com/range-swings/abc.mp4",
            {"key": "range-swings/abc.mp4", "Content-Type": "video/mp4"},
            "range-swings/abc.mp4"
        )
        mock_s3_service.return_value = mock_instance

        response = client.post(
            "/upload-url",
            json={
                "filename": "swing1.mp4",
                "contentType": "video/mp4"
            }
        )

        assert response.status_code == 200
        data = response.json()
        assert data["uploadUrl"] == "https://test-bucket.s3.amazonaws.com/"
        assert data["fileUrl"].endswith("range-swings/abc.mp4")
        assert data["key"] == "range-swings/abc.mp4"
        assert data["contentType"] == "video/mp4"
        assert data["uploadFields"]["Content-Type"] == "video/mp4"
        mock_instance.generate_presigned_upload_url.assert_called_once_with(
            filename="swing1.mp4",
            content_type="video/mp4"
        )


def test_get_upload_url_invalid_request(client):
    """Upload URL request missing the content type."""
    response = client.post(
        "/upload-url",
        json={
            "filename": "swing1.mp4"
        }
    )

    assert response.status_code == 422


def test_get_upload_url_s3_error(client):
    with patch('roundcaddy.routers.upload.S3Service') as mock_s3_service:
        mock_instance = MagicMock()
        mock_instance.generate_presigned_upload_url.side_effect = Exception("S3 error")
        mock_s3_service.return_value = mock_instance

        response = client.post(
            "/upload-url",
            json={
                "filename": "swing1.mp4",
                "contentType": "video/mp4"
            }
        )

        assert response.status_code == 500
        data = response.json()
        assert "Failed to generate upload URL" in data["detail"]


@pytest.mark.parametrize("filename,extension", [
    ("swing1.MOV", "mov"),
    ("clip.mp4", "mp4"),
    ("no_extension", "mp4"),
])
def test_build_key(filename, extension):
    key = S3Service.build_key(filename)

    assert key.startswith("range-swings/")
    assert key.endswith(f".{extension}")


def test_normalize_content_type():
    assert S3Service.normalize_content_type("a.mp4", "") == "video/mp4"
    assert S3Service.normalize_content_type("a.mp4", "application/octet-stream") == "video/mp4"
    assert S3Service.normalize_content_type("a.mov", "video/quicktime") == "video/quicktime"
    # Logged but passed through
    assert S3Service.normalize_content_type("a.png", "image/png") == "image/png"


def test_presigned_upload_uses_signed_content_type():
    with patch('roundcaddy.services.s3_service.boto3') as mock_boto3:
        mock_client = MagicMock()
        mock_client.generate_presigned_post.return_value = {
            "url": "https://bucket.s3.amazonaws.com/",
            "fields": {"policy": "abc"},
        }
        mock_boto3.client.return_value = mock_client

        service = S3Service()
        upload_url, file_url, fields, key = service.generate_presigned_upload_url("swing.mp4", "")

        assert upload_url == "https://bucket.s3.amazonaws.com/"
        assert fields == {"policy": "abc"}
        assert key.startswith("range-swings/")
        assert file_url.endswith(key)
        kwargs = mock_client.generate_presigned_post.call_args.kwargs
        assert kwargs["Fields"]["Content-Type"] == "video/mp4"
        assert {"Content-Type": "video/mp4"} in kwargs["Conditions"]
