import csv
import io

from rest_framework.renderers import BaseRenderer


class CSVTextRenderer(BaseRenderer):
    """Passes through text already formatted as CSV; other payloads become key/value rows."""

    media_type = "text/csv"
    format = "csv"
    charset = "utf-8"

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if data is None:
            return b""
        if not isinstance(data, str):
            buffer = io.StringIO()
            writer = csv.writer(buffer)
            for key, value in dict(data).items():
                writer.writerow([key, value])
            data = buffer.getvalue()
        return data.encode(self.charset)
