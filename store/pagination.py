from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StorePagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100

    def get_paginated_response(self, data, extra=None):
        body = {
            "results": data,
            "pagination": {
                "page": self.page.number,
                "limit": self.page.paginator.per_page,
                "total": self.page.paginator.count,
                "total_pages": self.page.paginator.num_pages,
            },
        }
        if extra:
            body.update(extra)
        return Response(body)
