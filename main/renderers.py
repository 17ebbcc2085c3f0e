from django.utils import timezone
from rest_framework.renderers import JSONRenderer


class EnvelopeJSONRenderer(JSONRenderer):
    """
    Wrap successful payloads as {data, statusCode, timestamp, paging?}.

    Error responses are already shaped by main.exceptions and pass through
    untouched. List views attach their paging block to the response as
    ``response.paging`` (see main.pagination).
    """

    def render(self, data, accepted_media_type=None, renderer_context=None):
        renderer_context = renderer_context or {}
        response = renderer_context.get('response')

        if response is not None and response.status_code < 400:
            envelope = {
                'data': data,
                'statusCode': response.status_code,
                'timestamp': timezone.now().isoformat(),
            }
            paging = getattr(response, 'paging', None)
            if paging is not None:
                envelope['paging'] = paging
            data = envelope

        return super().render(data, accepted_media_type, renderer_context)
