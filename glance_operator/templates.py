"""
Desired-state templates for the resources a GlanceAPI owns.

Every function is pure: same instance in, same description out. Nothing
here reads the cluster, so descriptions can be fingerprinted directly.
"""
from kubernetes import client

from glance_operator.config import settings
from glance_operator.models import GlanceAPI

CONFIG_HASH_ENV = "CONFIG_HASH"
CONFIG_MOUNT_PATH = "/etc/glance"
IMAGES_MOUNT_PATH = "/var/lib/glance/images"

GLANCE_API_CONF = """[DEFAULT]
bind_host = 0.0.0.0
bind_port = {port}
log_file = /dev/stdout
enabled_backends = default_backend:file

[database]
connection = mysql+pymysql://{database}:$(DatabasePassword)@{hostname}/{database}

[glance_store]
default_backend = default_backend

[default_backend]
filesystem_store_datadir = {images}

[paste_deploy]
flavor = keystone
"""

DB_SYNC_SCRIPT = """#!/bin/bash
set -e
sed "s/\\$(DatabasePassword)/${DatabasePassword}/" /etc/glance/glance-api.conf > /tmp/glance-api.conf
glance-manage --config-file /tmp/glance-api.conf db_sync
"""

START_SCRIPT = """#!/bin/bash
set -e
sed "s/\\$(DatabasePassword)/${DatabasePassword}/" /etc/glance/glance-api.conf > /tmp/glance-api.conf
exec glance-api --config-file /tmp/glance-api.conf
"""


def _labels(instance: GlanceAPI, component: str) -> dict:
    return {
        "app.kubernetes.io/name": "glance",
        "app.kubernetes.io/instance": instance.name,
        "app.kubernetes.io/component": component,
        "app.kubernetes.io/managed-by": "glance-operator",
    }


def _owner(instance: GlanceAPI) -> list:
    if not instance.uid:
        return []
    return [client.V1OwnerReference(
        api_version=f"{settings.CRD_GROUP}/{settings.CRD_VERSION}",
        kind=settings.CRD_KIND,
        name=instance.name,
        uid=instance.uid,
        controller=True,
        block_owner_deletion=True,
    )]


def _metadata(instance: GlanceAPI, name: str, component: str) -> client.V1ObjectMeta:
    return client.V1ObjectMeta(
        name=name,
        namespace=instance.namespace,
        labels=_labels(instance, component),
        owner_references=_owner(instance) or None,
    )


def _env(instance: GlanceAPI) -> list:
    return [client.V1EnvVar(
        name="DatabasePassword",
        value_from=client.V1EnvVarSource(
            secret_key_ref=client.V1SecretKeySelector(name=instance.spec.secret, key="DatabasePassword"),
        ),
    )]


def _config_volume(instance: GlanceAPI) -> client.V1Volume:
    return client.V1Volume(
        name="config-data",
        config_map=client.V1ConfigMapVolumeSource(name=instance.name, default_mode=0o755),
    )


def _config_mount() -> client.V1VolumeMount:
    return client.V1VolumeMount(name="config-data", mount_path=CONFIG_MOUNT_PATH, read_only=True)


def desired_pvc(instance: GlanceAPI) -> client.V1PersistentVolumeClaim:
    return client.V1PersistentVolumeClaim(
        api_version="v1",
        kind="PersistentVolumeClaim",
        metadata=_metadata(instance, instance.name, "image-store"),
        spec=client.V1PersistentVolumeClaimSpec(
            access_modes=["ReadWriteOnce"],
            storage_class_name=instance.spec.storageClass,
            resources=client.V1VolumeResourceRequirements(
                requests={"storage": instance.spec.storageRequest},
            ),
        ),
    )


def desired_service(instance: GlanceAPI) -> client.V1Service:
    return client.V1Service(
        api_version="v1",
        kind="Service",
        metadata=_metadata(instance, instance.name, "api"),
        spec=client.V1ServiceSpec(
            selector=_labels(instance, "api"),
            ports=[client.V1ServicePort(
                name="api",
                port=settings.GLANCE_API_PORT,
                target_port=settings.GLANCE_API_PORT,
                protocol="TCP",
            )],
        ),
    )


def desired_config_map(instance: GlanceAPI) -> client.V1ConfigMap:
    conf = GLANCE_API_CONF.format(
        port=settings.GLANCE_API_PORT,
        database=settings.DATABASE_NAME,
        hostname=instance.spec.databaseHostname,
        images=IMAGES_MOUNT_PATH,
    )
    return client.V1ConfigMap(
        api_version="v1",
        kind="ConfigMap",
        metadata=_metadata(instance, instance.name, "config"),
        data={
            "glance-api.conf": conf,
            "db-sync.sh": DB_SYNC_SCRIPT,
            "start.sh": START_SCRIPT,
        },
    )


def desired_schema(instance: GlanceAPI) -> dict:
    """Database request for the mariadb operator, kept unstructured."""
    metadata = {
        "name": instance.name,
        "namespace": instance.namespace,
        "labels": _labels(instance, "database"),
    }
    if instance.uid:
        metadata["ownerReferences"] = [{
            "apiVersion": f"{settings.CRD_GROUP}/{settings.CRD_VERSION}",
            "kind": settings.CRD_KIND,
            "name": instance.name,
            "uid": instance.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }]
    return {
        "apiVersion": f"{settings.SCHEMA_GROUP}/{settings.SCHEMA_VERSION}",
        "kind": "MariaDBDatabase",
        "metadata": metadata,
        "spec": {
            "secret": instance.spec.secret,
            "name": settings.DATABASE_NAME,
        },
    }


def desired_db_sync_job(instance: GlanceAPI) -> client.V1Job:
    """One-shot schema migration; a failed pod fails the job outright."""
    return client.V1Job(
        api_version="batch/v1",
        kind="Job",
        metadata=_metadata(instance, f"{instance.name}-db-sync", "db-sync"),
        spec=client.V1JobSpec(
            backoff_limit=0,
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels=_labels(instance, "db-sync")),
                spec=client.V1PodSpec(
                    restart_policy="Never",
                    containers=[client.V1Container(
                        name="glance-db-sync",
                        image=instance.spec.containerImage,
                        command=["/bin/bash", f"{CONFIG_MOUNT_PATH}/db-sync.sh"],
                        env=_env(instance),
                        volume_mounts=[_config_mount()],
                    )],
                    volumes=[_config_volume(instance)],
                ),
            ),
        ),
    )


def desired_deployment(instance: GlanceAPI, config_hash: str) -> client.V1Deployment:
    """
    Glance API pods. The config fingerprint is injected as an env var, so
    any ConfigMap change alters the pod template and triggers a rollout.
    """
    labels = _labels(instance, "api")
    env = _env(instance) + [client.V1EnvVar(name=CONFIG_HASH_ENV, value=config_hash)]
    return client.V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=_metadata(instance, instance.name, "api"),
        spec=client.V1DeploymentSpec(
            replicas=instance.spec.replicas,
            selector=client.V1LabelSelector(match_labels=labels),
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels=labels),
                spec=client.V1PodSpec(
                    containers=[client.V1Container(
                        name="glance-api",
                        image=instance.spec.containerImage,
                        command=["/bin/bash", f"{CONFIG_MOUNT_PATH}/start.sh"],
                        env=env,
                        ports=[client.V1ContainerPort(
                            name="api", container_port=settings.GLANCE_API_PORT,
                        )],
                        readiness_probe=client.V1Probe(
                            http_get=client.V1HTTPGetAction(
                                path="/healthcheck", port=settings.GLANCE_API_PORT,
                            ),
                            initial_delay_seconds=5,
                            period_seconds=10,
                        ),
                        volume_mounts=[
                            _config_mount(),
                            client.V1VolumeMount(name="image-store", mount_path=IMAGES_MOUNT_PATH),
                        ],
                    )],
                    volumes=[
                        _config_volume(instance),
                        client.V1Volume(
                            name="image-store",
                            persistent_volume_claim=client.V1PersistentVolumeClaimVolumeSource(
                                claim_name=instance.name,
                            ),
                        ),
                    ],
                ),
            ),
        ),
    )
