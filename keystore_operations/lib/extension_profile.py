"""Extension profiles for server and client identity certificates."""

from .models import ExtensionProfile, IdentityRole

SERVER_AUTH = "serverAuth"
CLIENT_AUTH = "clientAuth"

LEAF_KEY_USAGE = frozenset(
    {"digitalSignature", "nonRepudiation", "keyEncipherment", "dataEncipherment"}
)


def build_profile(role: IdentityRole, single_use: bool = False) -> ExtensionProfile:
    """Build the extension profile for an identity role.

    Server profiles always carry serverAuth with DNS:localhost and IP:127.0.0.1,
    whatever single_use says. Client profiles carry DNS:client and clientAuth,
    except in single-use mode where the client certificate is issued with
    serverAuth so it can act as the server side of a single-use handshake.

    Args:
        role: Identity the certificate is issued for
        single_use: Issue the client certificate with serverAuth EKU

    Returns:
        ExtensionProfile for the role
    """
    if role is IdentityRole.SERVER:
        return ExtensionProfile(
            key_usage=LEAF_KEY_USAGE,
            extended_key_usage=SERVER_AUTH,
            subject_alt_names=(("DNS", "localhost"), ("IP", "127.0.0.1")),
        )

    return ExtensionProfile(
        key_usage=LEAF_KEY_USAGE,
        extended_key_usage=SERVER_AUTH if single_use else CLIENT_AUTH,
        subject_alt_names=(("DNS", "client"),),
    )
