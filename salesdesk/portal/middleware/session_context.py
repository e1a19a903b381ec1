from portal.session import PortalSession


class SessionContextMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.portal_session = PortalSession(request.session)
        return self.get_response(request)
