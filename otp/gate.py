from otp.errors import AccountAlreadyExists, AccountNotFound
from otp.flows import FlowType
from otp.targets import Target

# whether a flow needs the account to exist before a code is sent
REQUIRES_ACCOUNT = {
    FlowType.LOGIN: True,
    FlowType.RECOVERY: True,
    FlowType.SIGNUP: False,
}


class ExistenceGate:
    def __init__(self, accounts):
        self.accounts = accounts

    def exists(self, target: Target) -> bool:
        return self.accounts.exists(target)

    def enforce(self, target: Target, flow_type: FlowType) -> None:
        exists = self.exists(target)
        if REQUIRES_ACCOUNT[flow_type]:
            if not exists:
                raise AccountNotFound()
        elif exists:
            raise AccountAlreadyExists()
