from functools import wraps

from django.shortcuts import redirect

from .session import get_auth_session


def guarded(required_roles=(), redirect_url=None):
    """
    Protect a Django view with the session route guard. Unauthenticated
    users are sent to the login page with a ``return`` parameter; users
    without one of ``required_roles`` are sent to ``redirect_url``.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            session = get_auth_session(request)
            target = session.guard_route(required_roles, redirect_url, request.get_full_path())
            if target is not None:
                return redirect(target)
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator
