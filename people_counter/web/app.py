"""Flask web application for the people counter."""

import io
import os
import time
from dataclasses import asdict
from typing import Optional, Dict, Any

from flask import Flask, jsonify, request, Response, send_file
from PIL import Image, ImageDraw, ImageFont

from ..detection_pipeline import CountingPipeline
from ..exceptions import InitializationError
from ..models.detection import CrossingEvent, FrameResult
from ..services.renderer import encode_jpeg
from ..logging_config import get_logger

logger = get_logger("web_app")


def event_to_dict(event: CrossingEvent) -> Dict[str, Any]:
    return {
        'timestamp': event.timestamp.isoformat(),
        'direction': event.direction.value,
        'track_id': event.track_id,
    }


def frame_result_to_dict(result: FrameResult) -> Dict[str, Any]:
    """JSON view of a published frame result."""
    return {
        'frame_index': result.frame_index,
        'timestamp': result.timestamp.isoformat(),
        'frame_width': result.frame_width,
        'frame_height': result.frame_height,
        'detections': [
            {
                'track_id': detection.track_id,
                'label': detection.box.class_label,
                'confidence': detection.box.confidence,
                'box': [detection.box.left, detection.box.top,
                        detection.box.right, detection.box.bottom],
            }
            for detection in result.detections
        ],
        'events': [event_to_dict(event) for event in result.events],
        'entered_count': result.counter_state.entered_count,
        'exited_count': result.counter_state.exited_count,
    }


class PeopleCounterWebApp:
    """Flask web application exposing the counting pipeline."""

    def __init__(self, pipeline: Optional[CountingPipeline] = None):
        """Initialize web application."""
        self.app = Flask(__name__)

        self.pipeline = pipeline or CountingPipeline()

        self.app.config['MAX_CONTENT_LENGTH'] = 1 * 1024 * 1024
        self._placeholder_jpeg: Optional[bytes] = None

        self._setup_routes()

        logger.info("People counter web application initialized")

    def _setup_routes(self):
        """Setup Flask routes."""

        @self.app.route('/api/status')
        def api_status():
            """Get system status."""
            try:
                return jsonify({
                    'success': True,
                    'data': self.pipeline.get_status()
                })
            except Exception as e:
                logger.error(f"Error getting status: {e}")
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 500

        @self.app.route('/api/counts')
        def api_counts():
            """Get live counters of the current session."""
            try:
                state = self.pipeline.get_counter_state()
                return jsonify({
                    'success': True,
                    'data': {
                        'entered_count': state.entered_count,
                        'exited_count': state.exited_count,
                        'running': self.pipeline.running
                    }
                })
            except Exception as e:
                logger.error(f"Error getting counts: {e}")
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 500

        @self.app.route('/api/detections')
        def api_detections():
            """Get tracked detections of the latest processed frame."""
            try:
                snapshot = self.pipeline.get_snapshot()
                return jsonify({
                    'success': True,
                    'data': frame_result_to_dict(snapshot) if snapshot else None
                })
            except Exception as e:
                logger.error(f"Error getting detections: {e}")
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 500

        @self.app.route('/api/events')
        def api_events():
            """Get recent persisted crossing events."""
            try:
                limit = request.args.get('limit', 50, type=int)
                if limit is None or limit < 1:
                    return jsonify({
                        'success': False,
                        'error': 'limit must be a positive integer'
                    }), 400

                events = self.pipeline.get_recent_events(limit)
                return jsonify({
                    'success': True,
                    'data': [event_to_dict(event) for event in events]
                })
            except Exception as e:
                logger.error(f"Error getting events: {e}")
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 500

        @self.app.route('/api/start', methods=['POST'])
        def api_start():
            """Start counting pipeline."""
            try:
                success = self.pipeline.start()
                return jsonify({
                    'success': success,
                    'message': 'Pipeline started' if success else 'Pipeline already running'
                })
            except InitializationError as e:
                logger.error(f"Pipeline failed to initialize: {e}")
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 500

        @self.app.route('/api/stop', methods=['POST'])
        def api_stop():
            """Stop counting pipeline."""
            try:
                self.pipeline.stop()
                return jsonify({
                    'success': True,
                    'message': 'Pipeline stopped'
                })
            except Exception as e:
                logger.error(f"Error stopping pipeline: {e}")
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 500

        @self.app.route('/api/config', methods=['GET'])
        def api_get_config():
            """Get current configuration."""
            try:
                return jsonify({
                    'success': True,
                    'data': asdict(self.pipeline.config_manager.get_config())
                })
            except Exception as e:
                logger.error(f"Error getting config: {e}")
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 500

        @self.app.route('/api/config', methods=['POST'])
        def api_update_config():
            """Update configuration."""
            data = request.get_json(silent=True)
            if not data or not isinstance(data, dict):
                return jsonify({
                    'success': False,
                    'error': 'No data provided'
                }), 400

            try:
                if not self.pipeline.update_configuration(**data):
                    return jsonify({
                        'success': False,
                        'error': 'Invalid configuration'
                    }), 400

                return jsonify({
                    'success': True,
                    'message': 'Configuration updated successfully'
                })
            except Exception as e:
                logger.error(f"Error updating config: {e}")
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 500

        @self.app.route('/api/report')
        def api_report():
            """Export and download the event history as PDF."""
            try:
                path = self.pipeline.export_report()
                return send_file(os.path.abspath(path), mimetype='application/pdf',
                                 as_attachment=True, download_name=os.path.basename(path))
            except Exception as e:
                logger.error(f"Error exporting report: {e}")
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 500

        @self.app.route('/api/cleanup', methods=['POST'])
        def api_cleanup():
            """Trigger data cleanup."""
            try:
                deleted = self.pipeline.cleanup_old_data()
                return jsonify({
                    'success': True,
                    'message': 'Data cleanup completed',
                    'data': {'deleted_events': deleted}
                })
            except Exception as e:
                logger.error(f"Error during cleanup: {e}")
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 500

        @self.app.route('/api/live-feed')
        def api_live_feed():
            """Stream annotated frames as MJPEG."""
            def generate_frames():
                while True:
                    yield self._multipart_chunk(self._current_jpeg())
                    time.sleep(1.0 / max(1.0, self.pipeline.config.target_fps))

            return Response(generate_frames(),
                            mimetype='multipart/x-mixed-replace; boundary=frame')

    def _current_jpeg(self) -> bytes:
        frame = self.pipeline.get_annotated_frame()
        if frame is not None:
            jpeg = encode_jpeg(frame)
            if jpeg is not None:
                return jpeg
        return self._create_placeholder_frame()

    @staticmethod
    def _multipart_chunk(jpeg: bytes) -> bytes:
        return b'--frame\r\nContent-Type: image/jpeg\r\n\r\n' + jpeg + b'\r\n'

    def _create_placeholder_frame(self) -> bytes:
        """Create a placeholder frame when no annotated frame is available."""
        if self._placeholder_jpeg is None:
            img = Image.new('RGB', (640, 480), color='gray')
            draw = ImageDraw.Draw(img)
            draw.text((280, 235), "No frames yet", fill="white", font=ImageFont.load_default())

            buffer = io.BytesIO()
            img.save(buffer, format='JPEG', quality=85)
            self._placeholder_jpeg = buffer.getvalue()

        return self._placeholder_jpeg

    def run(self, host='0.0.0.0', port=5000, debug=False):
        """Run the Flask application."""
        logger.info(f"Starting people counter web interface on {host}:{port}")
        self.app.run(host=host, port=port, debug=debug, threaded=True, use_reloader=False)

    def get_app(self):
        """Get the Flask app instance for external WSGI servers."""
        return self.app


def create_app(pipeline: Optional[CountingPipeline] = None) -> Flask:
    """Factory function to create Flask app."""
    web_app = PeopleCounterWebApp(pipeline)
    return web_app.get_app()
