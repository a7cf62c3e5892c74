import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from roundcaddy.main import app
from roundcaddy.database import get_db, Base
from roundcaddy.middleware.auth import get_current_user_id
from roundcaddy.routers.watch import get_websocket_user_id
from roundcaddy.services.swing_capture import MotionSample, PoseFrame, PosePoint
from roundcaddy.services.watch_sync import watch_sync_registry

# Create test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_USER_ID = "test_user_123"

SWING_START = datetime(2026, 3, 14, 15, 0, 0, tzinfo=timezone.utc)
FRAME_INTERVAL = timedelta(microseconds=33333)   # ~30fps
SAMPLE_INTERVAL = timedelta(milliseconds=10)      # 100Hz

# (shoulder rotation, hip rotation) per camera frame:
# setup 0-4, takeaway 5, backswing 6, top 15, downswing 16, impact 18,
# follow through 20, then settled until the finish
CAMERA_ROTATIONS = (
    [(2, 1)] * 5
    + [(9, 3), (20, 8), (32, 12), (44, 18), (56, 24), (66, 30), (76, 36), (84, 40), (90, 45), (88, 44)]
    + [(84, 42), (68, 30), (50, 20), (30, 10), (18, 6), (8, 3)]
    + [(6, 2)] * 20
)


def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


def mock_get_current_user_id():
    return TEST_USER_ID


@pytest.fixture(scope="function")
def db_session():
    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    session = TestingSessionLocal()

    yield session

    # Clean up
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user_id] = mock_get_current_user_id
    app.dependency_overrides[get_websocket_user_id] = mock_get_current_user_id
    watch_sync_registry.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    watch_sync_registry.reset()


@pytest.fixture
def make_pose_frames():
    """Camera frames for one complete swing with a 3:1 tempo"""
    def _make(start=SWING_START, setup_spine=30.0, swing_spine=33.0, posture_break_frame=None, nose_drift=0.0):
        frames = []
        for index, (shoulder, hip) in enumerate(CAMERA_ROTATIONS):
            spine = setup_spine if index < 5 else swing_spine
            if posture_break_frame is not None and index >= posture_break_frame:
                spine = setup_spine + 20
            drift = nose_drift * index / len(CAMERA_ROTATIONS)
            frames.append(PoseFrame(
                timestamp=start + FRAME_INTERVAL * index,
                frame_index=index,
                confidence=0.9,
                nose=PosePoint(0.5 + drift, 0.3),
                left_hip=PosePoint(0.45, 0.6),
                right_hip=PosePoint(0.55, 0.6),
                spine_angle=spine,
                shoulder_rotation=float(shoulder),
                hip_rotation=float(hip),
            ))
        return frames
    return _make


def _motion_profile():
    """(acceleration g, rotation rad/s) per Watch sample"""
    profile = [(0.1, 0.2)] * 60                       # address
    profile += [(2.0, 3.0)]                            # backswing start, sample 60
    profile += [(1.8, 3.0)] * 34                       # backswing
    profile += [(1.0, 0.5)]                            # top, sample 95
    profile += [(5.0, 6.0)]                            # downswing start, sample 96
    profile += [(float(g), 8.0) for g in range(6, 16)]  # accelerating, samples 97-106
    profile += [(16.0, 9.0), (5.0, 4.0)]               # peak then impact, samples 107-108
    profile += [(3.0, 2.0), (3.0, 1.0), (1.0, 0.5)]    # follow through and settle
    profile += [(0.2, 0.2)] * 10
    return profile


@pytest.fixture
def make_motion_samples():
    """Watch samples for one complete swing: 0.35s backswing, 0.12s downswing"""
    def _make(start=SWING_START, path_rotation=0.0):
        samples = []
        for index, (acceleration, rotation) in enumerate(_motion_profile()):
            # X rotation through the downswing carries the path signature
            rotation_x = path_rotation if 96 <= index <= 111 else 0.0
            samples.append(MotionSample(
                timestamp=start + SAMPLE_INTERVAL * index,
                index=index,
                acceleration_x=acceleration,
                acceleration_y=0.0,
                acceleration_z=0.0,
                rotation_x=rotation_x,
                rotation_y=rotation,
                rotation_z=0.0,
            ))
        return samples
    return _make


def pose_frame_json(frame):
    data = {
        "timestamp": frame.timestamp.isoformat(),
        "frame_index": frame.frame_index,
        "confidence": frame.confidence,
        "spine_angle": frame.spine_angle,
        "shoulder_rotation": frame.shoulder_rotation,
        "hip_rotation": frame.hip_rotation,
    }
    for name in ("nose", "left_hip", "right_hip"):
        point = getattr(frame, name)
        data[name] = {"x": point.x, "y": point.y}
    return data


def motion_sample_json(sample):
    return {
        "timestamp": sample.timestamp.isoformat(),
        "index": sample.index,
        "acceleration_x": sample.acceleration_x,
        "acceleration_y": sample.acceleration_y,
        "acceleration_z": sample.acceleration_z,
        "rotation_x": sample.rotation_x,
        "rotation_y": sample.rotation_y,
        "rotation_z": sample.rotation_z,
    }


@pytest.fixture
def camera_capture_payload(make_pose_frames):
    def _make(**kwargs):
        frames = make_pose_frames(**kwargs)
        return {
            "start_time": frames[0].timestamp.isoformat(),
            "end_time": frames[-1].timestamp.isoformat(),
            "pose_frames": [pose_frame_json(f) for f in frames],
        }
    return _make


@pytest.fixture
def watch_capture_payload(make_motion_samples):
    def _make(**kwargs):
        samples = make_motion_samples(**kwargs)
        return {
            "start_time": samples[0].timestamp.isoformat(),
            "end_time": samples[-1].timestamp.isoformat(),
            "samples": [motion_sample_json(s) for s in samples],
        }
    return _make
