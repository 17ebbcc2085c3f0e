"""
Page/limit pagination.

Unlike PageNumberPagination, a page past the end is not an error: it is an
empty page, and each list view decides what an empty page means for it.
"""
import math

from rest_framework import serializers
from rest_framework.pagination import BasePagination
from rest_framework.response import Response


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False)


class EnvelopePagination(BasePagination):
    page_query_param = 'page'
    limit_query_param = 'limit'
    default_limit = 10

    def paginate_queryset(self, queryset, request, view=None):
        default_limit = getattr(view, 'page_size', None) or self.default_limit

        params = PageQuerySerializer(data={
            key: request.query_params[key]
            for key in (self.page_query_param, self.limit_query_param)
            if key in request.query_params
        })
        params.is_valid(raise_exception=True)

        self.page = params.validated_data['page']
        self.limit = params.validated_data.get('limit') or default_limit
        self.total = queryset.count()

        offset = (self.page - 1) * self.limit
        return list(queryset[offset:offset + self.limit])

    def get_paging(self):
        return {
            'current_page': self.page,
            'size': self.limit,
            'total_page': math.ceil(self.total / self.limit),
        }

    def get_paginated_response(self, data):
        response = Response(data)
        response.paging = self.get_paging()
        return response

    def get_paginated_response_schema(self, schema):
        return {
            'type': 'object',
            'properties': {
                'data': schema,
                'statusCode': {'type': 'integer', 'example': 200},
                'timestamp': {'type': 'string', 'format': 'date-time'},
                'paging': {
                    'type': 'object',
                    'properties': {
                        'current_page': {'type': 'integer', 'example': 1},
                        'size': {'type': 'integer', 'example': 10},
                        'total_page': {'type': 'integer', 'example': 2},
                    },
                },
            },
        }
