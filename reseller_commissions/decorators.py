"""View decorators for the JSON API."""
from functools import wraps

from django.http import JsonResponse

from .exceptions import CommissionError


def login_required(view_func):
    """Like django's login_required, but answers 401 instead of redirecting."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'success': False, 'error': 'Unauthorized'}, status=401)
        return view_func(request, *args, **kwargs)
    return _wrapped


def commission_errors(view_func):
    """Turn CommissionError subclasses into JSON error responses."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except CommissionError as e:
            return JsonResponse({'success': False, 'error': e.message}, status=e.status_code)
    return _wrapped
