from otp.flows import FlowType

_SUBJECTS = {
    FlowType.LOGIN: "Your sign-in code",
    FlowType.SIGNUP: "Verify your new account",
    FlowType.RECOVERY: "Reset your password",
}

_INTROS = {
    FlowType.LOGIN: "Use the code below to sign in:",
    FlowType.SIGNUP: "Thanks for signing up. Use the code below to verify your account:",
    FlowType.RECOVERY: "Use the code below to reset your password:",
}


def render(flow_type: FlowType, code: str, ttl_minutes: int, brand: str):
    subject = f"[{brand}] {_SUBJECTS[flow_type]}"
    body = (
        f"{_INTROS[flow_type]}\n\n"
        f"    {code}\n\n"
        f"This code expires in {ttl_minutes} minutes.\n"
        "If you did not request it, you can ignore this message."
    )
    return subject, body


def render_sms(code: str, ttl_minutes: int, brand: str) -> str:
    return f"{brand}: {code} is your verification code. It expires in {ttl_minutes} minutes."
