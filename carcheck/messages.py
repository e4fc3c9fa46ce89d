"""User-facing Arabic messages shown by the app for backend errors."""

INVALID_CREDENTIALS = "Invalid login credentials"

LOGIN_INVALID = "بيانات الدخول غير صحيحة"
LOGIN_FAILED = "حدث خطأ أثناء تسجيل الدخول"
DEFAULT_USER_NAME = "مستخدم"

NOT_ALLOWED = "غير مصرح لك بهذا الإجراء"
CANNOT_DELETE_SELF = "لا يمكنك حذف حسابك الخاص"
CANNOT_CHANGE_OWN_ACCESS = "لا يمكنك تغيير صلاحياتك الخاصة"
ADMIN_DELETE_FAILED = "حدث خطأ في حذف المسؤول"
ADMIN_DELETED = "تم حذف المسؤول بنجاح"
ACCESS_UPDATE_FAILED = "حدث خطأ في تحديث الصلاحيات"
ACCESS_GRANTED = "تم منح الصلاحيات"
ACCESS_LIMITED = "تم تقييد الصلاحيات"

EMAIL_ALREADY_REGISTERED = "هذا البريد الإلكتروني مسجل بالفعل"
EMAIL_INVALID = "البريد الإلكتروني غير صالح"
PASSWORD_INVALID = "كلمة المرور غير صالحة"
SIGNUP_FAILED = "حدث خطأ: {error}"

NEW_REQUEST_TITLE = "طلب جديد"
NEW_REQUEST_BODY = "تم إنشاء طلب جديد لفحص السيارة"
TEST_TITLE = "📱 اختبار الإشعارات"
TEST_BODY = "هذا إشعار تجريبي!"


def login_error_message(error: str | None) -> str:
    if error == INVALID_CREDENTIALS:
        return LOGIN_INVALID
    return LOGIN_FAILED


def signup_error_message(error: str) -> str:
    lowered = error.lower()
    if "already registered" in lowered:
        return EMAIL_ALREADY_REGISTERED
    if "invalid email" in lowered:
        return EMAIL_INVALID
    if "password" in lowered:
        return PASSWORD_INVALID
    return SIGNUP_FAILED.format(error=error)


def access_toggled_message(new_access: str) -> str:
    return ACCESS_GRANTED if new_access == "full" else ACCESS_LIMITED
