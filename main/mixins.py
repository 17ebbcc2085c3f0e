"""
Response conventions shared by every resource view.
"""
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.response import Response


class PartialUpdateMixin:
    """PUT and PATCH both apply only the fields that were sent."""

    def update(self, request, *args, **kwargs):
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)


class DeleteMessageMixin:
    """Answer a delete with 200 and {message, success} instead of 204."""

    delete_message = 'Successfully deleted'

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        self.perform_destroy(instance)
        return Response(
            {'message': self.delete_message, 'success': True},
            status=status.HTTP_200_OK
        )


class EmptyListMixin:
    """
    Paginated list with a per-resource empty-page policy.

    When ``empty_message`` is set an empty page is a 404 carrying that
    message; otherwise it is a normal 200 with an empty list.
    """

    empty_message = None

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)

        if page is None:
            page = list(queryset)
        if not page and self.empty_message:
            raise NotFound(self.empty_message)

        serializer = self.get_serializer(page, many=True)
        if self.paginator is not None:
            return self.get_paginated_response(serializer.data)
        return Response(serializer.data)


class NotFoundMessageMixin:
    """Replace the generic 404 text with ``not_found_message``."""

    not_found_message = None

    def get_object(self):
        try:
            return super().get_object()
        except Http404:
            if self.not_found_message:
                raise NotFound(self.not_found_message)
            raise
