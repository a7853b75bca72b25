from supabase import Client


def find_auth_user_by_email(supabase: Client, email: str, per_page: int = 1000):
    """Page through auth users and return the one with this email (case-insensitive)"""
    target = email.strip().lower()
    page = 1
    while True:
        users = supabase.auth.admin.list_users(page=page, per_page=per_page)
        if not users:
            return None
        for user in users:
            if (user.email or "").lower() == target:
                return user
        if len(users) < per_page:
            return None
        page += 1
