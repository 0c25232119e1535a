from flask import Blueprint, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf

from hubsystem.errors import ForbiddenError, ValidationError
from hubsystem.forms import SignUpForm, SignInForm, ResetPasswordForm, ProfileForm
from hubsystem.models import db
from hubsystem.routes.helpers import json_body, validation_error, patch_form
from hubsystem.services.audit_service import AuditService
from hubsystem.services.otp_service import OTPService
from hubsystem.services.user_service import UserService

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

PROFILE_FIELDS = ('first_name', 'last_name', 'degree_programme', 'profile_picture')


@auth_bp.route('/csrf-token')
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})


@auth_bp.route('/send-otp', methods=['POST'])
def send_otp():
    email = UserService.normalize_email(json_body().get('email'))
    if not email:
        raise ValidationError("Email is required")
    if UserService.get_user_by_email(email):
        raise ValidationError("Email already registered. Please sign in.")

    if OTPService.get_active(email):
        return jsonify({"success": True, "message": "OTP already sent"})

    otp = OTPService.issue(email)
    sent = OTPService.send_signup_code(email, otp.code)
    if not sent:
        current_app.logger.warning("Sign-up OTP for %s was not emailed", email)
    return jsonify({"success": True, "message": "OTP sent to your email", "email_sent": sent})


@auth_bp.route('/verify-otp', methods=['POST'])
def verify_otp():
    data = json_body()
    email = UserService.normalize_email(data.get('email'))
    otp = OTPService.check(email, data.get('otp'))
    if otp is None:
        raise ValidationError("Invalid or expired OTP")

    OTPService.consume(otp)
    return jsonify({"success": True, "message": "OTP verified successfully"})


@auth_bp.route('/signup', methods=['POST'])
def signup():
    form = SignUpForm()
    if not form.validate_on_submit():
        return validation_error(form)

    user = UserService.create_user(
        email=form.email.data,
        password=form.password.data,
        first_name=form.first_name.data.strip(),
        last_name=form.last_name.data.strip(),
        degree_programme=form.degree_programme.data or None,
    )
    AuditService.record('USER_SIGNUP', 'USER', user.id, details={"email": user.email}, user=user)
    db.session.commit()

    current_app.logger.info("New user registered: %s", user.email)
    return jsonify({
        "success": True,
        "message": "Account created successfully",
        "user": user.to_dict(),
        "redirect_url": UserService.redirect_url_for(user),
    }), 201


@auth_bp.route('/signin', methods=['POST'])
def signin():
    form = SignInForm()
    if not form.validate_on_submit():
        return validation_error(form)

    email = UserService.normalize_email(form.email.data)
    try:
        user = UserService.authenticate(email, form.password.data)
    except ForbiddenError as e:
        AuditService.record('USER_LOGIN', 'USER', None, details={"email": email, "reason": e.message},
                            success=False, user_email=email)
        db.session.commit()
        raise

    login_user(user)
    UserService.record_login(user)
    AuditService.record('USER_LOGIN', 'USER', user.id, details={"email": user.email}, user=user)
    db.session.commit()

    return jsonify({
        "success": True,
        "user": user.to_dict(),
        "redirect_url": UserService.redirect_url_for(user),
    })


@auth_bp.route('/signout', methods=['POST'])
@login_required
def signout():
    AuditService.record('USER_LOGOUT', 'USER', current_user.id, details={"email": current_user.email})
    db.session.commit()
    logout_user()
    return jsonify({"success": True, "message": "Signed out"})


@auth_bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    email = UserService.normalize_email(json_body().get('email'))
    if not email:
        raise ValidationError("Email is required")

    user = UserService.get_user_by_email(email)
    if not user or user.deleted_at is not None:
        raise ValidationError("No account found with this email")

    otp = OTPService.issue(email)
    sent = OTPService.send_reset_code(email, otp.code)
    if not sent:
        current_app.logger.warning("Password reset OTP for %s was not emailed", email)
    return jsonify({"success": True, "message": "Password reset OTP sent to your email", "email_sent": sent})


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password():
    form = ResetPasswordForm()
    if not form.validate_on_submit():
        return validation_error(form)

    email = UserService.normalize_email(form.email.data)
    otp = OTPService.check(email, form.otp.data)
    if otp is None:
        raise ValidationError("Invalid or expired OTP")

    user = UserService.get_user_by_email(email)
    if not user or user.deleted_at is not None:
        raise ValidationError("No account found with this email")

    UserService.set_password(user, form.new_password.data)
    OTPService.consume(otp)
    AuditService.record('PASSWORD_RESET', 'USER', user.id, details={"email": user.email}, user=user)
    db.session.commit()
    return jsonify({"success": True, "message": "Password reset successfully"})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({"success": True, "user": current_user.to_dict()})


@auth_bp.route('/me', methods=['PATCH'])
@login_required
def update_me():
    form, sent = patch_form(ProfileForm, current_user, PROFILE_FIELDS)
    if not form.validate_on_submit():
        return validation_error(form)

    fields = {}
    for field in sent:
        value = (getattr(form, field).data or '').strip()
        fields[field] = value or None

    user = UserService.update_profile(current_user, skills=json_body().get('skills'), **fields)
    return jsonify({"success": True, "user": user.to_dict()})
