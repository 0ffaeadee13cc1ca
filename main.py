from iamboot import Template, to_cloudformation, to_yaml, validate_config



def main():
    # Example usage: bootstrap user plus the EBS CSI policy
    config = validate_config({
        "apiVersion": "bootstrap.aws.infrastructure.cluster.x-k8s.io/v1alpha1",
        "kind": "AWSIAMConfiguration",
        "spec": {
            "bootstrapUser": {"enable": True},
            "controlPlane": {"enableCSIPolicy": True},
        },
    })

    resources = Template(config.spec).render()
    print(to_yaml(to_cloudformation(resources)))

if __name__ == "__main__":
    main()
